"""Per-user automation settings: fetch-or-create, partial updates and run status."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AutomationSettingsRow
from app.models.user import utcnow
from app.schemas.automation import AutomationSettingsUpdate
from app.services.store import store_errors
from finance_cloud.errors import PersistenceFailed, ValidationFailed
from finance_cloud.models import AutomationSettings, RunStatus
from finance_cloud.settings import DEFAULT_AUTOMATION_SETTINGS, normalize

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500
_NULLABLE_FIELDS = {"dollar_alert_threshold", "dollar_lower_threshold"}


async def _fetch(session: AsyncSession, user_id: str) -> AutomationSettingsRow | None:
    async with store_errors("automations"):
        result = await session.execute(
            select(AutomationSettingsRow).where(AutomationSettingsRow.user_id == user_id)
        )
    return result.scalar_one_or_none()


async def ensure_settings(
    session: AsyncSession,
    user_id: str,
    *,
    category_share_pct: Decimal | None = None,
) -> AutomationSettingsRow:
    """Return the user's settings row, creating it with defaults on first use.

    A concurrent insert for the same user trips the unique constraint on
    ``user_id``; the loser rolls back and reads the winner's row.
    """

    row = await _fetch(session, user_id)
    if row is not None:
        return row

    defaults = {**DEFAULT_AUTOMATION_SETTINGS, "config": {}}
    if category_share_pct is not None:
        defaults["category_share_pct"] = category_share_pct
    row = AutomationSettingsRow(user_id=user_id, **defaults)
    session.add(row)
    try:
        async with store_errors("automations"):
            await session.commit()
    except PersistenceFailed as exc:
        if not isinstance(exc.__cause__, IntegrityError):
            raise
        await session.rollback()
        logger.info("Settings for user %s created concurrently, re-reading", user_id)
        row = await _fetch(session, user_id)
        if row is None:
            raise
        return row
    logger.info("Created default automation settings for user %s", user_id)
    return row


def parse_update(patch: AutomationSettingsUpdate | Mapping[str, Any]) -> AutomationSettingsUpdate:
    if isinstance(patch, AutomationSettingsUpdate):
        return patch
    try:
        return AutomationSettingsUpdate.model_validate(dict(patch))
    except ValidationError as exc:
        raise ValidationFailed(f"Invalid automation settings: {exc.errors()}") from exc


async def update_settings(
    session: AsyncSession,
    user_id: str,
    patch: AutomationSettingsUpdate | Mapping[str, Any],
    *,
    category_share_pct: Decimal | None = None,
) -> AutomationSettings:
    """Validate ``patch`` before touching the store, then persist it."""

    changes = parse_update(patch)
    row = await ensure_settings(session, user_id, category_share_pct=category_share_pct)
    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(row, field, value)
    async with store_errors("automations"):
        await session.commit()
    return normalize(row)


async def mark_run(
    session: AsyncSession,
    user_id: str,
    status: RunStatus,
    error: str | None = None,
    *,
    at: datetime | None = None,
) -> None:
    """Record the outcome of a run on the user's settings row.

    Issued as a plain UPDATE so it also works after the session was rolled
    back by a failed run.
    """

    stmt = (
        update(AutomationSettingsRow)
        .where(AutomationSettingsRow.user_id == user_id)
        .values(
            last_run_at=at or utcnow(),
            last_status=status.value,
            last_error=error[:MAX_ERROR_LENGTH] if error else None,
        )
    )
    async with store_errors("automations"):
        await session.execute(stmt)
        await session.commit()


__all__ = ["MAX_ERROR_LENGTH", "ensure_settings", "mark_run", "parse_update", "update_settings"]
