import asyncio
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from utils.utcnow import utcnow
from config import settings
from api import router
from services.odds_tracker import odds_tracker
from workers.odds_poller import odds_poller
from utils.logger import setup_logging, get_logger

# Setup logging
setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON, log_file=settings.LOG_FILE)
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Odds Tracker...")

    try:
        # Replay the snapshot ledger off the event loop; the service must be
        # able to start and serve with zero (or unreadable) snapshots.
        state = await asyncio.to_thread(odds_tracker.bootstrap)
        logger.info(
            "Market state restored from snapshots",
            initial_runners=len(state.initial_odds),
            last_known_runners=len(state.last_known_odds),
            recorded_movements=len(state.last_recorded_movement),
        )

        if settings.POLLING_ENABLED:
            await odds_poller.start()
        else:
            logger.info("Polling disabled; serving snapshot ledger read-only")

        logger.info("All services started successfully")
    except Exception as e:
        logger.critical(f"Startup failed: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down services...")
    await odds_poller.stop()
    close = getattr(odds_tracker.source, "close", None)
    if close is not None:
        await close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Odds Tracker",
    description="Race odds snapshot ledger with movement and overround analytics",
    version="1.0.0",
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500, content={"detail": "Internal server error", "error": str(exc)}
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


# API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Liveness plus a short summary of the ledger and poller"""
    status = odds_tracker.status()
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "services": {
            "poller": {
                "running": odds_poller.is_running,
                "interval_seconds": odds_poller.interval_seconds,
                "last_poll_at": status["last_poll_at"],
                "last_result": status["last_result"],
            },
            "ledger": {
                "snapshots": status["snapshots"],
                "initial_runners": status["initial_runners"],
                "updated_at": status["updated_at"],
            },
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.PORT,
        # Single worker: the live poll cache is in-process state.
        timeout_keep_alive=30,
    )
