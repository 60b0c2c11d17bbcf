"""Health check endpoint.

Verifies the server is running and its dependencies (database, Redis)
are reachable, and reports how many sockets this instance is serving.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from lexdesk import __version__
from lexdesk.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    # Check Redis
    try:
        from redis.asyncio import from_url
        from lexdesk.config import settings

        r = from_url(settings.redis_url)
        await r.ping()
        await r.aclose()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    gateway = request.app.state.gateway
    return {
        "status": status,
        **checks,
        "connections": gateway.connection_count(),
    }
