"""FastAPI application factory.

create_app() builds the BroadcastHub (unless one is passed in) and hands
that same instance to every router that needs it: the HTTP write path
publishes through it, the /ws endpoint registers observers with it.
Nothing reaches the hub through global state.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matchcast import __version__
from matchcast.api import build_api_router
from matchcast.config import settings
from matchcast.middleware.rate_limit import RateLimitMiddleware
from matchcast.middleware.request_id import RequestIdMiddleware
from matchcast.middleware.security import SecurityHeadersMiddleware
from matchcast.realtime import websocket
from matchcast.realtime.gate import CompositeGate, HandshakeGate, RateLimitGate, TokenGate
from matchcast.realtime.hub import BroadcastHub
from matchcast.redis_client import close_redis, init_redis

logger = structlog.get_logger()


def default_gate() -> HandshakeGate:
    """JWT check (optional in development) followed by a per-IP handshake limit."""
    return CompositeGate(
        TokenGate(required=settings.environment != "development"),
        RateLimitGate(per_minute=settings.ws_rate_limit_per_minute),
    )


def _lifespan(hub: BroadcastHub):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle.

        Anything before `yield` runs at startup, after `yield` at shutdown.
        """
        logger.info(
            "matchcast.starting",
            version=__version__,
            environment=settings.environment,
            port=settings.port,
        )

        try:
            await init_redis()
            logger.info("matchcast.redis_connected", url=settings.redis_url)
        except Exception as e:
            # Redis only backs rate limiting; the app works without it
            logger.warning("matchcast.redis_unavailable", error=str(e))

        sweeper = None
        if hub.idle_timeout is not None:
            sweeper = asyncio.create_task(
                hub.run_sweeper(interval=settings.ws_sweep_interval_seconds)
            )

        yield

        logger.info("matchcast.shutdown")

        if sweeper is not None:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass

        await hub.close_all()
        await close_redis()

        from matchcast.db.engine import engine
        await engine.dispose()

    return lifespan


def create_app(
    hub: Optional[BroadcastHub] = None,
    gate: Optional[HandshakeGate] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    hub = hub or BroadcastHub(
        outbox_size=settings.ws_outbox_size,
        max_topics=settings.ws_max_topics_per_connection,
        idle_timeout=settings.ws_idle_timeout_seconds,
    )
    gate = gate or default_gate()

    app = FastAPI(
        title="matchcast",
        description="Live matches and commentary with WebSocket push",
        version=__version__,
        lifespan=_lifespan(hub),
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        write_rpm=settings.rate_limit_write_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(build_api_router(hub))
    app.include_router(websocket.build_router(hub, gate))

    return app


# Default app instance (used by uvicorn: matchcast.main:app)
app = create_app()
