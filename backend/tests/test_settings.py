"""Normalization of partial or malformed automation settings."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from finance_cloud.models import AutomationSettings, InsightFrequency, RunStatus
from finance_cloud.settings import normalize


def test_missing_record_yields_defaults():
    assert normalize(None) == AutomationSettings()
    assert normalize({}) == AutomationSettings()


def test_booleans_must_be_real_booleans():
    config = normalize({"enabled": "false", "push_enabled": 0, "email_enabled": False})

    assert config.enabled is True
    assert config.push_enabled is True
    assert config.email_enabled is False


def test_numbers_are_clamped():
    config = normalize(
        {
            "card_due_days": 25,
            "investment_drop_pct": "0.1",
            "spending_spike_pct": 500,
            "category_share_pct": "abc",
        }
    )

    assert config.card_due_days == 10
    assert config.investment_drop_pct == Decimal("0.5")
    assert config.spending_spike_pct == Decimal("100")
    assert config.category_share_pct == Decimal("40")


def test_card_due_days_rounds_half_up():
    assert normalize({"card_due_days": 2.5}).card_due_days == 3
    assert normalize({"card_due_days": "0"}).card_due_days == 1


def test_nullable_thresholds():
    config = normalize({"dollar_alert_threshold": "5.2", "dollar_lower_threshold": ""})

    assert config.dollar_alert_threshold == Decimal("5.2")
    assert config.dollar_lower_threshold is None
    assert normalize({"dollar_alert_threshold": True}).dollar_alert_threshold is None


def test_legacy_threshold_keys_are_read():
    config = normalize({"dollar_upper": 5.5, "dollar_lower": "4.9"})

    assert config.dollar_alert_threshold == Decimal("5.5")
    assert config.dollar_lower_threshold == Decimal("4.9")


def test_frequency_and_status():
    assert normalize({"insight_frequency": "WEEKLY"}).insight_frequency is InsightFrequency.WEEKLY
    assert normalize({"insight_frequency": "hourly"}).insight_frequency is InsightFrequency.MONTHLY
    assert normalize({"last_status": "error"}).last_status is RunStatus.FAILURE
    assert normalize({"last_status": "skipped"}).last_status is RunStatus.SKIPPED
    assert normalize({"last_status": "bogus"}).last_status is None


def test_reads_attribute_objects():
    ran_at = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    row = SimpleNamespace(
        enabled=False,
        card_due_days=5,
        config={"channel": "email"},
        last_run_at=ran_at,
        last_status="success",
        last_error=None,
    )

    config = normalize(row)

    assert config.enabled is False
    assert config.card_due_days == 5
    assert config.config == {"channel": "email"}
    assert config.last_run_at == ran_at
    assert config.last_status is RunStatus.SUCCESS
    assert config.insight_frequency is InsightFrequency.MONTHLY


def test_notification_channels_follow_the_flags():
    assert normalize({}).notification_channels == ("internal", "push", "email")
    assert normalize({"push_enabled": False, "internal_enabled": False}).notification_channels == ("email",)
