"""Insight persistence: idempotent batch replacement and latest lookups."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import InsightRow
from app.services.store import store_errors
from finance_cloud.models import Insight, InsightSource, Severity

logger = logging.getLogger(__name__)

REPLACED_SOURCES = (InsightSource.AUTOMATION.value, InsightSource.AI.value)


def to_row(user_id: str, insight: Insight) -> InsightRow:
    return InsightRow(
        user_id=user_id,
        period=insight.period,
        insight_type=insight.type,
        title=insight.title,
        body=insight.body,
        severity=insight.severity.value,
        source=insight.source.value,
        metadata_=dict(insight.metadata),
    )


def to_insight(row: InsightRow) -> Insight:
    return Insight(
        id=row.id,
        period=row.period,
        type=row.insight_type,
        title=row.title,
        body=row.body,
        severity=Severity(row.severity),
        source=InsightSource(row.source),
        metadata=dict(row.metadata_ or {}),
        created_at=row.created_at,
    )


async def replace_batch(
    session: AsyncSession, user_id: str, period: str, insights: Sequence[Insight]
) -> int:
    """Replace every generated insight of ``(user_id, period)`` in one transaction.

    Manual insights are kept. Re-running with the same inputs leaves the same
    set of rows.
    """

    async with store_errors("insights"):
        await session.execute(
            delete(InsightRow).where(
                InsightRow.user_id == user_id,
                InsightRow.period == period,
                InsightRow.source.in_(REPLACED_SOURCES),
            )
        )
        session.add_all([to_row(user_id, insight) for insight in insights])
        await session.commit()
    logger.info("Stored %d insights for user %s period %s", len(insights), user_id, period)
    return len(insights)


async def latest_insights(session: AsyncSession, user_id: str, period: str | None = None) -> tuple[str | None, list[Insight]]:
    """Insights of ``period``, or of the most recent period that has any."""

    if period is None:
        async with store_errors("insights"):
            result = await session.execute(
                select(InsightRow.period)
                .where(InsightRow.user_id == user_id)
                .order_by(InsightRow.period.desc())
                .limit(1)
            )
        period = result.scalar_one_or_none()
        if period is None:
            return None, []

    async with store_errors("insights"):
        result = await session.execute(
            select(InsightRow)
            .where(InsightRow.user_id == user_id, InsightRow.period == period)
            .order_by(InsightRow.created_at, InsightRow.insight_type)
        )
    return period, [to_insight(row) for row in result.scalars()]


__all__ = ["REPLACED_SOURCES", "latest_insights", "replace_batch", "to_insight", "to_row"]
