"""Automation run and settings endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import UserContext, get_current_user_dependency, require_cron_secret
from app.api.errors import error_payload
from app.config import AppSettings
from app.db.session import Database
from app.schemas import (
    AutomationRunResponse,
    AutomationSettingsResponse,
    AutomationSettingsSchema,
    AutomationSettingsUpdate,
    CronRunResponse,
)
from app.services.automation import AutomationRunResult, run_all_enabled, run_user_automation
from app.services.automation_settings import ensure_settings, update_settings
from app.services.quotes import ReferenceRateSource
from finance_cloud.models import AutomationSettings
from finance_cloud.settings import normalize


def settings_schema(config: AutomationSettings) -> AutomationSettingsSchema:
    return AutomationSettingsSchema(
        enabled=config.enabled,
        push_enabled=config.push_enabled,
        email_enabled=config.email_enabled,
        internal_enabled=config.internal_enabled,
        card_due_days=config.card_due_days,
        dollar_alert_threshold=float(config.dollar_alert_threshold)
        if config.dollar_alert_threshold is not None
        else None,
        dollar_lower_threshold=float(config.dollar_lower_threshold)
        if config.dollar_lower_threshold is not None
        else None,
        insight_frequency=config.insight_frequency.value,
        investment_drop_pct=float(config.investment_drop_pct),
        spending_spike_pct=float(config.spending_spike_pct),
        category_share_pct=float(config.category_share_pct),
        monthly_report_enabled=config.monthly_report_enabled,
        market_refresh_enabled=config.market_refresh_enabled,
        config=dict(config.config),
        last_run_at=config.last_run_at,
        last_status=config.last_status.value if config.last_status else None,
        last_error=config.last_error,
    )


def run_response(result: AutomationRunResult) -> AutomationRunResponse | JSONResponse:
    if not result.ok:
        return error_payload(result.error or "Automation run failed", 500)
    return AutomationRunResponse(
        ok=True,
        status=result.status.value,
        period=result.period,
        insights_created=result.insights_created,
        categorized=result.categorized,
        reference_rate=float(result.reference_rate),
        warnings=result.warnings,
        channels=result.channels,
    )


def get_automations_router(
    database: Database,
    settings: AppSettings,
    *,
    rate_source: ReferenceRateSource | None = None,
    ai_client: Any | None = None,
) -> APIRouter:
    router = APIRouter(prefix="/automations", tags=["automations"])
    current_user = get_current_user_dependency(database)

    @router.post("/run", response_model=AutomationRunResponse)
    async def run_automation(
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> AutomationRunResponse | JSONResponse:
        result = await run_user_automation(
            session, user.user_id, settings, rate_source=rate_source, ai_client=ai_client
        )
        return run_response(result)

    cron_guard = require_cron_secret(settings.cron_secret)

    @router.post("/cron", response_model=CronRunResponse, dependencies=[Depends(cron_guard)])
    async def run_cron() -> CronRunResponse:
        summary = await run_all_enabled(
            database.session_factory, settings, rate_source=rate_source, ai_client=ai_client
        )
        return CronRunResponse(
            checked=summary.checked,
            processed=summary.processed,
            skipped=summary.skipped,
            failed=summary.failed,
            total_insights=summary.total_insights,
            total_categorized=summary.total_categorized,
            reference_rate=float(summary.reference_rate),
            errors=summary.errors,
        )

    @router.get("/settings", response_model=AutomationSettingsResponse)
    async def get_settings_endpoint(
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> AutomationSettingsResponse:
        row = await ensure_settings(session, user.user_id, category_share_pct=settings.category_share_pct)
        return AutomationSettingsResponse(settings=settings_schema(normalize(row)))

    @router.put("/settings", response_model=AutomationSettingsResponse)
    async def put_settings_endpoint(
        payload: AutomationSettingsUpdate,
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> AutomationSettingsResponse:
        config = await update_settings(
            session, user.user_id, payload, category_share_pct=settings.category_share_pct
        )
        return AutomationSettingsResponse(settings=settings_schema(config))

    return router


__all__ = ["get_automations_router", "run_response", "settings_schema"]
