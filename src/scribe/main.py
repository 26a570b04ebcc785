"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, Sentry,
lifespan events for database initialization and minutes service wiring,
and the v1 API router.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.scribe.config import get_settings
from src.scribe.core.database import close_db, get_session, init_db
from src.scribe.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.scribe.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.scribe.api.v1.router import router as v1_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB, Sentry and the minutes service."""
    import structlog

    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()
    await init_db()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    # Missing credentials surface per request as ConfigurationError
    try:
        from src.scribe.minutes.generator import MinutesGenerator
        from src.scribe.minutes.guard import InvocationGuard
        from src.scribe.minutes.repository import MinutesRepository
        from src.scribe.minutes.service import MinutesService
        from src.scribe.minutes.versioning import VersionChainManager
        from src.scribe.services.llm import LiteLLMProvider

        provider = LiteLLMProvider(model=settings.GENERATION_MODEL)
        guard = InvocationGuard(
            timeout_ms=settings.GENERATION_TIMEOUT_MS,
            max_retries=settings.GENERATION_MAX_RETRIES,
            base_delay_ms=settings.GENERATION_BASE_DELAY_MS,
            max_delay_ms=settings.GENERATION_MAX_DELAY_MS,
            jitter_ms=settings.GENERATION_JITTER_MS,
        )
        generator = MinutesGenerator(
            provider=provider,
            guard=guard,
            max_input_chars=settings.MAX_INPUT_CHARS,
        )
        chain = VersionChainManager(MinutesRepository(session_factory=get_session))
        app.state.minutes_service = MinutesService(generator=generator, chain=chain)
        log.info(
            "minutes_service_initialized",
            model=settings.GENERATION_MODEL,
            credential_present=bool(settings.api_key_for_model(settings.GENERATION_MODEL)),
        )
    except Exception:
        log.warning("minutes_service_init_failed", exc_info=True)
        app.state.minutes_service = None

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Scribe API",
        version="0.1.0",
        description="Structured meeting minutes with resilient AI generation and version history",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
