"""FastAPI server for golf trip side games (skins, nassau, wolf)."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import config
from logging_config import setup_logging
from middleware import RequestContextMiddleware
from routers.health import router as health_router, set_health_dependencies
from routers.side_games import router as side_games_router, set_side_game_service

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


_event_store = None
_state_cache = None


async def _init_state_cache():
    """Connect the snapshot cache; the server runs without it."""
    global _state_cache
    from stores.state_cache import get_state_cache

    try:
        _state_cache = await get_state_cache(config.REDIS_URL)
    except Exception as e:
        logger.warning(f"Redis connection failed: {e} - snapshot cache disabled")
        _state_cache = None


async def _init_services():
    """Initialize the event store, side game service and recovery."""
    global _event_store
    from stores.event_store import get_event_store
    from services.recovery_service import RecoveryService
    from services.side_game_service import SideGameService

    _event_store = await get_event_store(config.POSTGRES_URL)
    set_side_game_service(SideGameService(_event_store, _state_cache))
    logger.info("Side game service initialized")

    if _state_cache is not None:
        recovery = RecoveryService(_event_store, _state_cache)
        results = await recovery.recover_all_games()
        logger.info(
            f"Snapshot recovery: {results['recovered']} recovered, "
            f"{results['skipped']} skipped, {results['failed']} failed, "
            f"{results['pruned']} pruned"
        )


async def _shutdown_services():
    """Gracefully shut down all services."""
    from stores.event_store import close_event_store
    from stores.state_cache import close_state_cache

    set_side_game_service(None)
    await close_event_store()
    await close_state_cache()
    logger.info("Persistence connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for async service initialization."""
    if config.REDIS_URL:
        await _init_state_cache()

    if config.POSTGRES_URL:
        try:
            await _init_services()
        except Exception as e:
            logger.error(f"Failed to initialize services: {e}")
            raise
    else:
        logger.warning("POSTGRES_URL not configured - side game endpoints will return 503")

    set_health_dependencies(event_store=_event_store, state_cache=_state_cache)

    logger.info(f"Side game server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _shutdown_services()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Golf Trip Side Games",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

app.include_router(side_games_router)
app.include_router(health_router)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting side game server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
