"""Route registration helpers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from app.config import AppSettings
from app.db.session import Database
from app.services.quotes import ReferenceRateSource

from .automations import get_automations_router
from .insights import get_insights_router
from .investments import get_investments_router
from .reports import get_reports_router


def build_api_router(
    database: Database,
    settings: AppSettings,
    *,
    rate_source: ReferenceRateSource | None = None,
    ai_client: Any | None = None,
) -> APIRouter:
    """Assemble every API router against one database and settings instance."""

    api_router = APIRouter()
    api_router.include_router(
        get_automations_router(database, settings, rate_source=rate_source, ai_client=ai_client)
    )
    api_router.include_router(
        get_insights_router(database, settings, rate_source=rate_source, ai_client=ai_client)
    )
    api_router.include_router(get_reports_router(database, settings))
    api_router.include_router(get_investments_router(database))
    return api_router


__all__ = ["build_api_router"]
