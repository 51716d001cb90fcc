"""Insight rule engine."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_cloud.errors import ValidationFailed
from finance_cloud.models import (
    Account,
    AccountMovement,
    AutomationSettings,
    Card,
    InvestmentPosition,
    LedgerTransaction,
    Severity,
)
from finance_cloud.rules import generate

TODAY = date(2024, 6, 30)


def _tx(tx_id: str, day: date, tx_type: str, amount, description: str = "", category: str | None = None, account_id=None):
    return LedgerTransaction(
        id=tx_id,
        occurred_at=day,
        type=tx_type,
        amount=amount,
        description=description,
        category=category,
        account_id=account_id,
    )


def june_transactions() -> list[LedgerTransaction]:
    return [
        _tx("inc", date(2024, 6, 5), "income", 5000, "Salary"),
        _tx("rent", date(2024, 6, 10), "expense", 3000, "Aluguel", "Moradia"),
        _tx("food", date(2024, 6, 12), "expense", 2000, "Mercado", "Alimentacao"),
        _tx("ride", date(2024, 6, 15), "expense", 1200, "Uber trip"),
        _tx("may", date(2024, 5, 20), "expense", 5000, "Aluguel", "Moradia"),
    ]


def _by_type(batch):
    return {insight.type: insight for insight in batch.insights}


def test_deficit_month_insights():
    batch = generate([], june_transactions(), AutomationSettings(), Decimal("0"), "2024-06", today=TODAY)
    insights = _by_type(batch)

    deficit = insights["balance_deficit"]
    assert deficit.severity is Severity.WARNING
    assert deficit.metadata["deficit"] == 1200.0
    assert deficit.metadata["income"] == 5000.0
    assert deficit.metadata["expense"] == 6200.0
    assert batch.report.summary.balance == Decimal("-1200")
    assert "balance_surplus" not in insights

    assert insights["overview"].severity is Severity.INFO
    assert insights["category_focus"].metadata["category"] == "Moradia"
    assert insights["spending_spike"].severity is Severity.WARNING
    assert insights["forecast"].severity is Severity.CRITICAL
    assert insights["forecast"].metadata["forecast_net"] == -1200.0
    assert all(insight.period == "2024-06" for insight in batch.insights)


def test_unavailable_rate_skips_dollar_rules():
    settings = AutomationSettings(dollar_alert_threshold=Decimal("5"), dollar_lower_threshold=Decimal("6"))

    batch = generate([], june_transactions(), settings, 0, "2024-06", today=TODAY)

    assert not {"dollar_above_threshold", "dollar_below_threshold"} & set(_by_type(batch))


def test_dollar_thresholds():
    upper = generate(
        [], [], AutomationSettings(dollar_alert_threshold=Decimal("5.5")), Decimal("5.8"), "2024-06", today=TODAY
    )
    lower = generate(
        [], [], AutomationSettings(dollar_lower_threshold=Decimal("6.0")), Decimal("5.8"), "2024-06", today=TODAY
    )
    quiet = generate(
        [], [], AutomationSettings(dollar_alert_threshold=Decimal("6.0")), Decimal("5.8"), "2024-06", today=TODAY
    )

    alert = _by_type(upper)["dollar_above_threshold"]
    assert alert.severity is Severity.CRITICAL
    assert alert.metadata == {"rate": 5.8, "threshold": 5.5}
    assert _by_type(lower)["dollar_below_threshold"].metadata["threshold"] == 6.0
    assert "dollar_above_threshold" not in _by_type(quiet)


def test_surplus_and_reduction():
    transactions = [
        _tx("inc", date(2024, 6, 5), "income", 4000),
        _tx("rent", date(2024, 6, 10), "expense", 1000, "Aluguel", "Moradia"),
        _tx("rent-may", date(2024, 5, 10), "expense", 2000, "Aluguel", "Moradia"),
    ]

    insights = _by_type(generate([], transactions, AutomationSettings(), 0, "2024-06", today=TODAY))

    assert insights["balance_surplus"].severity is Severity.SUCCESS
    assert insights["balance_surplus"].metadata["surplus"] == 3000.0
    assert insights["spending_reduction"].severity is Severity.SUCCESS
    assert insights["forecast"].severity is Severity.SUCCESS


def test_small_increase_is_informational():
    transactions = [
        _tx("a", date(2024, 6, 10), "expense", 110, "Mercado", "Alimentacao"),
        _tx("b", date(2024, 5, 10), "expense", 100, "Mercado", "Alimentacao"),
    ]

    insights = _by_type(generate([], transactions, AutomationSettings(), 0, "2024-06", today=TODAY))

    assert insights["spending_spike"].severity is Severity.INFO


def test_outlier_expense():
    transactions = [_tx(f"s{i}", date(2024, 6, i + 1), "expense", 20, "Padaria", "Alimentacao") for i in range(9)]
    transactions.append(_tx("tv", date(2024, 6, 20), "expense", 900, "Televisao", "Casa"))

    outlier = _by_type(generate([], transactions, AutomationSettings(), 0, "2024-06", today=TODAY))["outlier"]

    assert outlier.metadata["description"] == "Televisao"
    assert outlier.metadata["amount"] == 900.0


def test_category_share_override():
    insights = _by_type(
        generate(
            [], june_transactions(), AutomationSettings(), 0, "2024-06", today=TODAY, category_share_pct=Decimal("60")
        )
    )

    assert "category_focus" not in insights


def test_negative_available_balance():
    accounts = [Account(id="acc", opening_balance=100), Account(id="old", opening_balance=-900, archived=True)]
    transactions = [_tx("big", date(2024, 6, 3), "expense", 400, "Aluguel", "Moradia", account_id="acc")]

    insight = _by_type(generate(accounts, transactions, AutomationSettings(), 0, "2024-06", today=TODAY))[
        "available_balance"
    ]

    assert insight.metadata == {"available_balance": -300.0, "accounts": 1}


def test_investment_drop():
    positions = [
        InvestmentPosition(quantity=10, average_price=100, current_price=95, price_history=[100, 95], asset_name="PETR4"),
        InvestmentPosition(quantity=10, average_price=10, current_price=10.1, price_history=[10, 10.1]),
    ]

    insight = _by_type(
        generate([], [], AutomationSettings(), 0, "2024-06", positions=positions, today=TODAY)
    )["investment_drop"]

    assert insight.title == "Drop in PETR4"
    assert insight.metadata["drop_percent"] == -5.0


def test_future_period_has_no_forecast():
    insights = _by_type(generate([], june_transactions(), AutomationSettings(), 0, "2024-09", today=TODAY))

    assert "forecast" not in insights
    assert "overview" in insights


def test_default_period_is_current_month():
    batch = generate([], june_transactions(), AutomationSettings(), 0, None, today=date(2024, 6, 18))

    assert batch.period == "2024-06"


def test_generation_is_deterministic():
    first = generate([], june_transactions(), AutomationSettings(), Decimal("5.1"), "2024-06", today=TODAY)
    second = generate([], june_transactions(), AutomationSettings(), Decimal("5.1"), "2024-06", today=TODAY)

    assert first.insights == second.insights


def test_malformed_period_raises():
    with pytest.raises(ValidationFailed):
        generate([], [], AutomationSettings(), 0, "2024/06", today=TODAY)


CARD_TODAY = date(2024, 6, 22)
CARDS = [
    Card(id="visa", name="Visa", closing_day=25, due_day=28),
    Card(id="master", name="Master", closing_day=23, due_day=24),
    Card(id="empty", name="Empty", closing_day=22, due_day=23),
]
CARD_CHARGES = [
    LedgerTransaction(id="c1", occurred_at=date(2024, 6, 1), type="expense", amount=300, card_id="visa"),
    LedgerTransaction(id="c2", occurred_at=date(2024, 6, 10), type="expense", amount=80, card_id="master"),
    LedgerTransaction(id="c3", occurred_at=date(2024, 6, 11), type="card_payment", amount=500, card_id="empty"),
]


def test_card_alerts_pick_the_nearest_open_invoice():
    batch = generate(
        [], CARD_CHARGES, AutomationSettings(), 0, "2024-06", cards=CARDS, today=CARD_TODAY
    )
    insights = _by_type(batch)

    closing = insights["card_closing_soon"]
    assert closing.severity is Severity.WARNING
    assert closing.metadata["card_id"] == "master"
    assert closing.metadata["days"] == 1
    assert closing.metadata["date"] == "2024-06-23"
    assert closing.metadata["amount"] == 80.0
    assert closing.metadata["cards"] == 2

    due = insights["card_due_soon"]
    assert due.metadata["card_id"] == "master"
    assert due.metadata["days"] == 2
    assert due.metadata["cards"] == 1


def test_card_window_follows_card_due_days():
    batch = generate(
        [], CARD_CHARGES, AutomationSettings(card_due_days=1), 0, "2024-06", cards=CARDS, today=CARD_TODAY
    )
    insights = _by_type(batch)

    assert insights["card_closing_soon"].metadata["cards"] == 1
    assert "card_due_soon" not in insights


def test_card_alerts_only_for_the_current_month():
    batch = generate(
        [], CARD_CHARGES, AutomationSettings(), 0, "2024-05", cards=CARDS, today=CARD_TODAY
    )

    assert not {"card_closing_soon", "card_due_soon"} & set(_by_type(batch))


def test_balances_use_the_full_ledger_movements():
    accounts = [Account(id="a1", name="Checking", opening_balance=100)]
    movements = [AccountMovement(type="expense", amount=500, account_id="a1")]

    batch = generate(
        accounts, june_transactions(), AutomationSettings(), 0, "2024-06", movements=movements, today=TODAY
    )

    assert _by_type(batch)["available_balance"].metadata["available_balance"] == -400.0
