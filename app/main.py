"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (one per bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Ledger schema creation and the notification dispatcher

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.infrastructure.ledger.schema import init_schema
from app.interfaces.health import router as health_router
from app.interfaces.ledger.dependencies import get_engine, get_notification_dispatcher
from app.interfaces.ledger.router import router as ledger_router
from app.shared.errors.handlers import register_error_handlers
from app.shared.logging import configure_logging
from app.shared.security.headers import SecurityHeadersMiddleware
from app.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


def _resolve(app: FastAPI, dependency):
    """Call a dependency provider, honoring test overrides."""
    return app.dependency_overrides.get(dependency, dependency)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create tables, start/stop notification delivery."""
    init_schema(_resolve(app, get_engine))

    dispatcher = _resolve(app, get_notification_dispatcher)
    dispatcher.start()
    logger.info("%s %s started", settings.project_name, settings.version)

    yield

    # Shutdown
    dispatcher.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(ledger_router, prefix="/api/v1")

    return app


app = create_app()
