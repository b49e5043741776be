"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. It is also the composition root for the realtime core: the
registry, broadcast router, dataset cache and notifier are built here,
once, and hung on app.state. Nothing in the realtime package is a
module-level singleton.

Lifespan manages startup/shutdown (schema, Redis, engine).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stallpos import __version__
from stallpos.api import api_router
from stallpos.config import Settings, settings
from stallpos.events.notifier import EventNotifier
from stallpos.realtime.broadcast import BroadcastRouter
from stallpos.realtime.cache import DatasetCache
from stallpos.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "stallpos.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from stallpos.db.engine import create_schema, engine
    from stallpos.db.redis import close_redis, init_redis

    await create_schema()

    try:
        await init_redis()
        logger.info("stallpos.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Only rate limiting depends on Redis
        logger.warning("stallpos.redis_unavailable", error=str(e))

    yield

    logger.info("stallpos.shutdown", connected_clients=len(app.state.registry))

    await close_redis()
    await engine.dispose()


def build_realtime(config: Settings) -> EventNotifier:
    """Wire registry → router → cache → notifier."""
    registry = ConnectionRegistry()
    router = BroadcastRouter(registry)
    cache = DatasetCache(
        default_ttl=config.cache_ttl_seconds,
        dedupe_inflight=config.cache_dedupe_inflight,
    )
    return EventNotifier(registry, router, cache)


def create_app(notifier: Optional[EventNotifier] = None) -> FastAPI:
    """Build and return the FastAPI application.

    Tests pass their own notifier to observe broadcasts and cache state.
    """
    app = FastAPI(
        title="StallPOS",
        description="Food stall point-of-sale backend with realtime order dashboards",
        version=__version__,
        lifespan=lifespan,
    )

    notifier = notifier or build_realtime(settings)
    app.state.notifier = notifier
    app.state.registry = notifier.registry
    app.state.cache = notifier.cache

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from stallpos.middleware.rate_limit import RateLimitMiddleware
    from stallpos.middleware.request_id import RequestIdMiddleware
    from stallpos.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        order_rpm=settings.rate_limit_order_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)

    # Mount WebSocket route
    from stallpos.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: stallpos.main:app)
app = create_app()
