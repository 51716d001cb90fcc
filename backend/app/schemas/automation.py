"""Pydantic schemas for automation settings and runs."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class AutomationSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    push_enabled: bool | None = None
    email_enabled: bool | None = None
    internal_enabled: bool | None = None
    card_due_days: int | None = Field(default=None, ge=1, le=10)
    dollar_alert_threshold: Decimal | None = Field(default=None, gt=0)
    dollar_lower_threshold: Decimal | None = Field(default=None, gt=0)
    insight_frequency: Literal["daily", "weekly", "monthly"] | None = None
    investment_drop_pct: Decimal | None = Field(default=None, ge=Decimal("0.5"), le=50)
    spending_spike_pct: Decimal | None = Field(default=None, ge=5, le=100)
    category_share_pct: Decimal | None = Field(default=None, ge=5, le=100)
    monthly_report_enabled: bool | None = None
    market_refresh_enabled: bool | None = None
    config: dict[str, Any] | None = None


class AutomationSettingsSchema(BaseModel):
    enabled: bool
    push_enabled: bool
    email_enabled: bool
    internal_enabled: bool
    card_due_days: int
    dollar_alert_threshold: float | None = None
    dollar_lower_threshold: float | None = None
    insight_frequency: str
    investment_drop_pct: float
    spending_spike_pct: float
    category_share_pct: float
    monthly_report_enabled: bool
    market_refresh_enabled: bool
    config: dict[str, Any] = Field(default_factory=dict)
    last_run_at: datetime | None = None
    last_status: str | None = None
    last_error: str | None = None


class AutomationSettingsResponse(BaseModel):
    ok: bool = True
    settings: AutomationSettingsSchema


class AutomationRunResponse(BaseModel):
    ok: bool
    status: str
    period: str | None = None
    insights_created: int = 0
    categorized: int = 0
    reference_rate: float = 0.0
    warnings: list[str] = Field(default_factory=list)
    channels: list[str] = Field(default_factory=list)
    error: str | None = None


class CronRunResponse(BaseModel):
    ok: bool = True
    checked: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    total_insights: int = 0
    total_categorized: int = 0
    reference_rate: float = 0.0
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "AutomationRunResponse",
    "AutomationSettingsResponse",
    "AutomationSettingsSchema",
    "AutomationSettingsUpdate",
    "CronRunResponse",
]
