"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI instance
with its own realtime objects (gateway, bridge, service) on app.state.
Lifespan manages startup/shutdown (Redis, the pub/sub subscriber, the
database engine). Middleware, CORS, and routers all registered here.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from lexdesk import __version__
from lexdesk.api import api_router
from lexdesk.config import settings
from lexdesk.errors import LexdeskError
from lexdesk.realtime.gateway import ConnectionGateway
from lexdesk.realtime.pubsub import FanoutBridge
from lexdesk.realtime.service import RealtimeService

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "lexdesk.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    bridge: FanoutBridge = app.state.bridge
    subscriber_task = None

    from lexdesk.realtime.pubsub import close_redis, init_redis
    try:
        redis = await init_redis()
        bridge.attach(redis)
        subscriber_task = asyncio.create_task(bridge.run())
        logger.info("lexdesk.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("lexdesk.redis_unavailable", error=str(e))
        # Redis is optional — without it broadcasts only reach local sockets

    yield

    # Shutdown
    logger.info("lexdesk.shutdown")

    if subscriber_task is not None:
        subscriber_task.cancel()
        try:
            await subscriber_task
        except asyncio.CancelledError:
            pass

    bridge.attach(None)
    await close_redis()

    # Close database engine
    from lexdesk.db.engine import engine
    await engine.dispose()


async def _lexdesk_error_handler(request: Request, exc: LexdeskError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("lexdesk.database_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Database error"})


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="lexdesk",
        description="Notifications, messages, favorites and real-time fan-out for a legal practice",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Realtime objects (one set per app, never module globals) ──
    gateway = ConnectionGateway()
    bridge = FanoutBridge(gateway.rooms, channel=settings.realtime_channel)
    app.state.gateway = gateway
    app.state.bridge = bridge
    app.state.realtime = RealtimeService(bridge, gateway)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler

    from lexdesk.middleware.rate_limit import RateLimitMiddleware
    from lexdesk.middleware.request_id import RequestIdMiddleware
    from lexdesk.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LexdeskError, _lexdesk_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route
    from lexdesk.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: lexdesk.main:app)
app = create_app()
