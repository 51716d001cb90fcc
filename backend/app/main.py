"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.baggage import get_baggage

from app.api.errors import register_error_handlers
from app.api.routes import build_api_router
from app.config import AppSettings, get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.init import init_database
from app.db.session import Database
from app.services.quotes import ReferenceRateSource

# Allow common local development origins (localhost and 127.0.0.1) on port 4200,
# plus same-origin without port to support different setups.
ALLOWED_ORIGINS = [
    "http://localhost:4200",
    "http://127.0.0.1:4200",
    "http://localhost",
    "http://127.0.0.1",
]


@asynccontextmanager
async def _lifespan(app: FastAPI, db: Database) -> AsyncIterator[None]:
    await init_database(db)
    yield
    await db.dispose()


def create_app(
    database: Database | None = None,
    settings: AppSettings | None = None,
    *,
    rate_source: ReferenceRateSource | None = None,
    ai_client: Any | None = None,
) -> FastAPI:
    """Build the API around ``database``; collaborators can be injected for tests."""

    settings = settings or get_settings()
    database_instance = database or Database(settings.database_url)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, database_instance),
    )
    setup_telemetry(app, settings, engine=database_instance.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            # Expose tracing/debug headers for end-to-end propagation debugging
            "traceparent",
            "tracestate",
            "baggage",
            "x-trace-id",
            "x-request-id",
        ],
    )
    register_error_handlers(app)
    app.include_router(
        build_api_router(database_instance, settings, rate_source=rate_source, ai_client=ai_client)
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "timezone": settings.timezone,
        }

    # Attach end-user attributes from W3C Baggage to the active server span
    @app.middleware("http")
    async def _attach_user_baggage(request: Request, call_next):  # type: ignore[no-untyped-def]
        span = trace.get_current_span()
        for key in ("enduser.id", "enduser.role", "enduser.email"):
            value = get_baggage(key)
            if value:
                span.set_attribute(key, str(value))
        return await call_next(request)

    return app


setup_logging()
app = create_app()

__all__ = ["app", "create_app"]
