"""Insight generation and lookup endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import UserContext, get_current_user_dependency
from app.api.routes.automations import run_response
from app.config import AppSettings
from app.db.session import Database
from app.schemas import AutomationRunResponse, InsightListResponse, InsightSchema
from app.services.automation import run_user_automation
from app.services.insights import latest_insights
from app.services.quotes import ReferenceRateSource
from finance_cloud.models import Insight
from finance_cloud.periods import normalize_month_key


def insight_schema(insight: Insight) -> InsightSchema:
    return InsightSchema(
        id=insight.id,
        period=insight.period,
        insight_type=insight.type,
        title=insight.title,
        body=insight.body,
        severity=insight.severity.value,
        source=insight.source.value,
        metadata=dict(insight.metadata),
        created_at=insight.created_at,
    )


def get_insights_router(
    database: Database,
    settings: AppSettings,
    *,
    rate_source: ReferenceRateSource | None = None,
    ai_client: Any | None = None,
) -> APIRouter:
    router = APIRouter(prefix="/insights", tags=["insights"])
    current_user = get_current_user_dependency(database)

    @router.post("/run", response_model=AutomationRunResponse)
    async def run_insights(
        period: str | None = Query(default=None, examples=["2024-06"]),
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> AutomationRunResponse | JSONResponse:
        if period is not None:
            period = normalize_month_key(period)
        result = await run_user_automation(
            session,
            user.user_id,
            settings,
            rate_source=rate_source,
            ai_client=ai_client,
            period=period,
        )
        return run_response(result)

    @router.get("/latest", response_model=InsightListResponse)
    async def get_latest(
        period: str | None = Query(default=None, examples=["2024-06"]),
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> InsightListResponse:
        if period is not None:
            period = normalize_month_key(period)
        resolved, insights = await latest_insights(session, user.user_id, period)
        return InsightListResponse(
            period=resolved or "",
            insights=[insight_schema(insight) for insight in insights],
        )

    return router


__all__ = ["get_insights_router", "insight_schema"]
