"""Automation run orchestration for one user and for every enabled user."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import AppSettings
from app.core.telemetry import automation_metrics
from app.models import AutomationSettingsRow, Transaction
from app.services.automation_settings import MAX_ERROR_LENGTH, ensure_settings, mark_run
from app.services.insights import replace_batch
from app.services.quotes import ReferenceRateSource, build_rate_source, resolve_reference_rate
from app.services.store import (
    load_account_movements,
    load_accounts,
    load_card_charges,
    load_cards,
    load_positions,
    load_transactions,
    store_errors,
)
from app.services.suggestions import build_categorizer, suggest_tips
from finance_cloud.cards import CYCLE_LOOKAROUND
from finance_cloud.categorizer import Categorizer
from finance_cloud.errors import FinanceCoreError, SchemaMissing
from finance_cloud.models import ZERO, Insight, InsightSource, RunStatus, Severity
from finance_cloud.periods import MonthRange, normalize_month_key
from finance_cloud.rules import generate
from finance_cloud.settings import normalize

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CATEGORIZE_SCAN_LIMIT = 400


@dataclass
class AutomationRunResult:
    user_id: str
    ok: bool
    status: RunStatus
    period: str | None = None
    insights_created: int = 0
    categorized: int = 0
    reference_rate: Decimal = ZERO
    warnings: list[str] = field(default_factory=list)
    channels: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class CronRunSummary:
    checked: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_insights: int = 0
    total_categorized: int = 0
    reference_rate: Decimal = ZERO
    errors: list[str] = field(default_factory=list)


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, SchemaMissing):
        return exc.hint
    return str(exc) or exc.__class__.__name__


async def auto_categorize(
    session: AsyncSession,
    user_id: str,
    categorizer: Categorizer,
    *,
    batch_size: int = 100,
) -> int:
    """Label the most recent uncategorized expenses; returns how many were updated."""

    stmt = (
        select(Transaction)
        .where(Transaction.user_id == user_id, Transaction.type.in_(["expense", "card_payment"]))
        .order_by(Transaction.occurred_at.desc())
        .limit(CATEGORIZE_SCAN_LIMIT)
    )
    async with store_errors("transactions"):
        result = await session.execute(stmt)
    pending = [row for row in result.scalars() if not (row.category or "").strip()][:batch_size]
    if not pending:
        return 0

    labels = await asyncio.to_thread(categorizer.categorize, [row.description or "" for row in pending])
    for row, label in zip(pending, labels):
        row.category = label
    async with store_errors("transactions"):
        await session.commit()
    return len(pending)


def _tip_insights(period: str, tips: list[str]) -> list[Insight]:
    return [
        Insight(
            period=period,
            type=f"ai_tip_{index}",
            title=f"AI insight {index}",
            body=tip,
            severity=Severity.INFO,
            source=InsightSource.AI,
        )
        for index, tip in enumerate(tips, start=1)
    ]


async def run_user_automation(
    session: AsyncSession,
    user_id: str,
    settings: AppSettings,
    *,
    rate_source: ReferenceRateSource | None = None,
    reference_rate: Decimal | None = None,
    categorizer: Categorizer | None = None,
    ai_client: Any | None = None,
    period: str | None = None,
    today: date | None = None,
) -> AutomationRunResult:
    """Run settings, quote, categorization, rules and persistence for one user.

    Never raises: failures are recorded on the settings row and returned as
    ``ok=False`` with the error message. A precomputed ``reference_rate``
    skips the quote lookup.
    """

    today = today or date.today()
    started = time.perf_counter()
    with tracer.start_as_current_span("automation.run") as span:
        span.set_attribute("enduser.id", user_id)
        try:
            row = await ensure_settings(session, user_id, category_share_pct=settings.category_share_pct)
            config = normalize(row)
            if not config.enabled:
                await mark_run(session, user_id, RunStatus.SKIPPED)
                span.set_attribute("automation.status", RunStatus.SKIPPED.value)
                automation_metrics.record(RunStatus.SKIPPED.value, time.perf_counter() - started)
                logger.info("Automation disabled for user %s, skipping", user_id)
                return AutomationRunResult(user_id=user_id, ok=True, status=RunStatus.SKIPPED)

            key = normalize_month_key(period, today=today)
            span.set_attribute("automation.period", key)

            if reference_rate is None:
                reference_rate = await resolve_reference_rate(rate_source or build_rate_source(settings))
            categorizer = categorizer or build_categorizer(settings, ai_client)
            warnings: list[str] = []
            try:
                categorized = await auto_categorize(
                    session, user_id, categorizer, batch_size=settings.categorize_batch_size
                )
            except FinanceCoreError as exc:
                logger.warning("Auto-categorization skipped for user %s: %s", user_id, exc)
                await session.rollback()
                categorized = 0
                warnings.append(describe_error(exc))

            month_range = MonthRange.for_month(key)
            accounts = await load_accounts(session, user_id)
            movements = await load_account_movements(session, user_id)
            transactions = await load_transactions(
                session, user_id, start=month_range.previous_start, end_exclusive=month_range.end_exclusive
            )
            card_charges = await load_card_charges(
                session, user_id, today - CYCLE_LOOKAROUND, today + CYCLE_LOOKAROUND
            )
            positions, position_warnings = await load_positions(session, user_id)
            warnings.extend(position_warnings)
            cards, card_warnings = await load_cards(session, user_id)
            warnings.extend(card_warnings)

            batch = generate(
                accounts,
                transactions,
                config,
                reference_rate,
                key,
                positions=positions,
                cards=cards,
                card_charges=card_charges,
                movements=movements,
                today=today,
            )
            tips = await asyncio.to_thread(suggest_tips, batch.report.summary, settings, ai_client)
            insights = list(batch.insights) + _tip_insights(key, tips)

            created = await replace_batch(session, user_id, key, insights)
            await mark_run(session, user_id, RunStatus.SUCCESS)
        except Exception as exc:  # run boundary: every failure is recorded and reported
            message = describe_error(exc)[:MAX_ERROR_LENGTH]
            logger.exception("Automation run failed for user %s: %s", user_id, message)
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, message))
            await session.rollback()
            try:
                await mark_run(session, user_id, RunStatus.FAILURE, message)
            except FinanceCoreError:
                logger.exception("Could not record failed run for user %s", user_id)
            automation_metrics.record(RunStatus.FAILURE.value, time.perf_counter() - started)
            return AutomationRunResult(user_id=user_id, ok=False, status=RunStatus.FAILURE, error=message)

        span.set_attribute("automation.status", RunStatus.SUCCESS.value)
        span.set_attribute("automation.insights", created)
        automation_metrics.record(
            RunStatus.SUCCESS.value, time.perf_counter() - started, insights=created, categorized=categorized
        )
        logger.info(
            "Automation run for user %s period %s stored %d insights (rate=%s, categorized=%d)",
            user_id,
            key,
            created,
            reference_rate,
            categorized,
        )
        return AutomationRunResult(
            user_id=user_id,
            ok=True,
            status=RunStatus.SUCCESS,
            period=key,
            insights_created=created,
            categorized=categorized,
            reference_rate=reference_rate,
            warnings=warnings,
            channels=list(config.notification_channels) if created else [],
        )


async def run_all_enabled(
    session_factory: async_sessionmaker[AsyncSession],
    settings: AppSettings,
    *,
    rate_source: ReferenceRateSource | None = None,
    categorizer: Categorizer | None = None,
    ai_client: Any | None = None,
    today: date | None = None,
) -> CronRunSummary:
    """Run automation for every user with ``enabled`` settings, one session each."""

    async with session_factory() as session:
        async with store_errors("automations"):
            result = await session.execute(
                select(AutomationSettingsRow.user_id)
                .where(AutomationSettingsRow.enabled.is_(True))
                .order_by(AutomationSettingsRow.user_id)
            )
        user_ids = list(result.scalars())

    summary = CronRunSummary()
    if not user_ids:
        return summary

    summary.reference_rate = await resolve_reference_rate(rate_source or build_rate_source(settings))
    for user_id in user_ids:
        summary.checked += 1
        async with session_factory() as session:
            run = await run_user_automation(
                session,
                user_id,
                settings,
                reference_rate=summary.reference_rate,
                categorizer=categorizer,
                ai_client=ai_client,
                today=today,
            )
        if not run.ok:
            summary.failed += 1
            summary.errors.append(f"[{user_id}] {run.error}")
        elif run.status is RunStatus.SKIPPED:
            summary.skipped += 1
        else:
            summary.processed += 1
            summary.total_insights += run.insights_created
            summary.total_categorized += run.categorized

    logger.info(
        "Cron automation checked=%d processed=%d skipped=%d failed=%d",
        summary.checked,
        summary.processed,
        summary.skipped,
        summary.failed,
    )
    return summary


__all__ = [
    "AutomationRunResult",
    "CronRunSummary",
    "auto_categorize",
    "describe_error",
    "run_all_enabled",
    "run_user_automation",
]
