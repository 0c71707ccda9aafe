from importlib import import_module

__all__ = [
    "odds_tracker",
    "OddsTracker",
    "MarketState",
    "SnapshotStore",
    "Ledger",
    "LivePollCache",
    "HttpOddsSource",
    "compute_market_analytics",
    "reconstruct_race_history",
]

# Lazy so that importing one leaf module (e.g. services.snapshot_store) does
# not build the settings-wired tracker singleton.
_LAZY_EXPORTS = {
    "odds_tracker": ("services.odds_tracker", "odds_tracker"),
    "OddsTracker": ("services.odds_tracker", "OddsTracker"),
    "MarketState": ("services.odds_tracker", "MarketState"),
    "SnapshotStore": ("services.snapshot_store", "SnapshotStore"),
    "Ledger": ("services.ledger", "Ledger"),
    "LivePollCache": ("services.live_cache", "LivePollCache"),
    "HttpOddsSource": ("services.odds_source", "HttpOddsSource"),
    "compute_market_analytics": ("services.analytics", "compute_market_analytics"),
    "reconstruct_race_history": ("services.history", "reconstruct_race_history"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module 'services' has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
