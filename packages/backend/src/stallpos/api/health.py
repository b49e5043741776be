"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and dependencies (database, Redis) are reachable. Redis being down only
disables rate limiting, so it doesn't degrade the overall status.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from stallpos import __version__
from stallpos.api.deps import get_notifier
from stallpos.db.engine import engine
from stallpos.events.notifier import EventNotifier

router = APIRouter()


@router.get("/health")
async def health_check(notifier: EventNotifier = Depends(get_notifier)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        from stallpos.db.redis import get_redis

        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"unavailable: {e}"

    checks["realtime"] = "ok"
    checks["connected_clients"] = len(notifier.registry)

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
