"""
Liveness and readiness checks.

/health answers as long as the process runs. /ready answers 200 only
when hole entries can be stored: Postgres is required, Redis is
reported but optional since reads fall back to replay.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app startup
_event_store = None
_state_cache = None


def set_health_dependencies(event_store=None, state_cache=None):
    global _event_store, _state_cache
    _event_store = event_store
    _state_cache = state_cache


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _check_event_store() -> dict:
    if _event_store is None:
        return {"status": "not_configured"}
    try:
        async with _event_store.pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except Exception as e:
        logger.warning(f"Event store unreachable: {e}")
        return {"status": "error", "message": str(e)}
    return {"status": "ok"}


async def _check_state_cache() -> dict:
    if _state_cache is None:
        return {"status": "not_configured"}
    try:
        await _state_cache.redis.ping()
    except Exception as e:
        logger.warning(f"Snapshot cache unreachable: {e}")
        return {"status": "error", "message": str(e)}
    return {"status": "ok"}


@router.get("/health")
async def health_check():
    return {"status": "ok", "timestamp": _now()}


@router.get("/ready")
async def readiness_check():
    checks = {
        "event_store": await _check_event_store(),
        "state_cache": await _check_state_cache(),
    }
    ready = checks["event_store"]["status"] == "ok"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "degraded",
            "checks": checks,
            "timestamp": _now(),
        },
    )
