from .routes_odds import router

__all__ = ["router"]
