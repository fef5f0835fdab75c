"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (the database engine).
Middleware, CORS, and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from headacher import __version__
from headacher.api import api_router
from headacher.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    The federated key set is fetched lazily on the first ID token, not here.
    """
    logger.info(
        "headacher.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        federated_enabled=bool(settings.federated_project_id),
    )

    yield

    logger.info("headacher.shutdown")

    from headacher.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Headacher",
        description="Personal headache and timeline tracker with wallet and federated sign-in",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler

    from headacher.middleware.request_id import RequestIdMiddleware
    from headacher.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Location"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: headacher.main:app)
app = create_app()
