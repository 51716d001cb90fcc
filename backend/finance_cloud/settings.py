"""Normalization of stored automation settings into a complete configuration."""
from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from .models import AutomationSettings, InsightFrequency, RunStatus, to_decimal

DEFAULT_AUTOMATION_SETTINGS: dict[str, Any] = {
    "enabled": True,
    "push_enabled": True,
    "email_enabled": True,
    "internal_enabled": True,
    "card_due_days": 3,
    "dollar_alert_threshold": None,
    "dollar_lower_threshold": None,
    "insight_frequency": InsightFrequency.MONTHLY.value,
    "investment_drop_pct": Decimal("2"),
    "spending_spike_pct": Decimal("20"),
    "category_share_pct": Decimal("40"),
    "monthly_report_enabled": True,
    "market_refresh_enabled": True,
    "config": {},
}

# Older rows stored the rate thresholds under these names.
_LEGACY_KEYS = {
    "dollar_alert_threshold": "dollar_upper",
    "dollar_lower_threshold": "dollar_lower",
}


def _read(raw: Any, key: str) -> Any:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        value = raw.get(key)
    else:
        value = getattr(raw, key, None)
    if value is None and key in _LEGACY_KEYS:
        return _read(raw, _LEGACY_KEYS[key])
    return value


def _is_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    try:
        return Decimal(str(value).strip()).is_finite()
    except ArithmeticError:
        return False


def _boolean(value: Any, fallback: bool) -> bool:
    return value if isinstance(value, bool) else fallback


def _number(value: Any, fallback: Decimal, low: Decimal, high: Decimal) -> Decimal:
    parsed = to_decimal(value) if _is_number(value) else fallback
    return min(high, max(low, parsed))


def _nullable_number(value: Any) -> Decimal | None:
    return to_decimal(value) if _is_number(value) else None


def _frequency(value: Any) -> InsightFrequency:
    try:
        return InsightFrequency(str(value).strip().lower())
    except ValueError:
        return InsightFrequency.MONTHLY


def _status(value: Any) -> RunStatus | None:
    if value is None:
        return None
    normalized = str(value).strip().lower()
    if normalized == "error":
        return RunStatus.FAILURE
    try:
        return RunStatus(normalized)
    except ValueError:
        return None


def normalize(raw: Any = None) -> AutomationSettings:
    """Fill every missing or invalid field of ``raw`` with its default.

    ``raw`` may be ``None``, a mapping, or any object exposing the columns as
    attributes (an ORM row). Never raises.
    """

    defaults = DEFAULT_AUTOMATION_SETTINGS
    card_due_days = _number(
        _read(raw, "card_due_days"), Decimal(defaults["card_due_days"]), Decimal(1), Decimal(10)
    )
    config = _read(raw, "config")
    last_run_at = _read(raw, "last_run_at")
    last_error = _read(raw, "last_error")
    return AutomationSettings(
        enabled=_boolean(_read(raw, "enabled"), defaults["enabled"]),
        dollar_alert_threshold=_nullable_number(_read(raw, "dollar_alert_threshold")),
        dollar_lower_threshold=_nullable_number(_read(raw, "dollar_lower_threshold")),
        insight_frequency=_frequency(_read(raw, "insight_frequency")),
        push_enabled=_boolean(_read(raw, "push_enabled"), defaults["push_enabled"]),
        email_enabled=_boolean(_read(raw, "email_enabled"), defaults["email_enabled"]),
        internal_enabled=_boolean(_read(raw, "internal_enabled"), defaults["internal_enabled"]),
        card_due_days=int(card_due_days.to_integral_value(rounding=ROUND_HALF_UP)),
        investment_drop_pct=_number(
            _read(raw, "investment_drop_pct"), defaults["investment_drop_pct"], Decimal("0.5"), Decimal("50")
        ),
        spending_spike_pct=_number(
            _read(raw, "spending_spike_pct"), defaults["spending_spike_pct"], Decimal("5"), Decimal("100")
        ),
        category_share_pct=_number(
            _read(raw, "category_share_pct"), defaults["category_share_pct"], Decimal("5"), Decimal("100")
        ),
        monthly_report_enabled=_boolean(
            _read(raw, "monthly_report_enabled"), defaults["monthly_report_enabled"]
        ),
        market_refresh_enabled=_boolean(
            _read(raw, "market_refresh_enabled"), defaults["market_refresh_enabled"]
        ),
        config=dict(config) if isinstance(config, Mapping) else {},
        last_run_at=last_run_at if isinstance(last_run_at, datetime) else None,
        last_status=_status(_read(raw, "last_status")),
        last_error=last_error if isinstance(last_error, str) else None,
    )


__all__ = ["DEFAULT_AUTOMATION_SETTINGS", "normalize"]
