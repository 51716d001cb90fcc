"""Domain models used by the Finance Cloud analytics core."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal, falling back to zero."""

    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, float):
        if not math.isfinite(value):
            return ZERO
        return Decimal(str(value))
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class Operation(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: Any) -> "Operation":
        """Map stored operation labels (``BUY``/``compra``, ``SELL``/``venda``)."""

        if isinstance(raw, Operation):
            return raw
        normalized = str(raw or "").strip().lower()
        if normalized in {"buy", "compra"}:
            return cls.BUY
        if normalized in {"sell", "venda"}:
            return cls.SELL
        return cls.OTHER

    @property
    def sign(self) -> int:
        # OTHER counts as a purchase until product confirms otherwise.
        return -1 if self is Operation.SELL else 1


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"
    SUCCESS = "success"


class InsightSource(str, Enum):
    AUTOMATION = "automation"
    AI = "ai"
    MANUAL = "manual"


class InsightFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


INCOME_TYPES = frozenset({"income", "adjustment"})
EXPENSE_TYPES = frozenset({"expense", "card_payment"})


@dataclass(frozen=True)
class InvestmentPosition:
    """A single held investment lot."""

    quantity: Any = ZERO
    average_price: Any = ZERO
    current_price: Any = ZERO
    dividends_received: Any = ZERO
    price_history: Sequence[Any] = ()
    operation: Operation = Operation.BUY
    asset_name: Optional[str] = None
    investment_type: Optional[str] = None

    @property
    def label(self) -> str:
        return self.asset_name or self.investment_type or "Investment"


@dataclass(frozen=True)
class InvestmentPurchase:
    """A dated contribution into an investment, reported as a monthly expense."""

    id: str
    date: date
    amount: Any
    operation: Operation = Operation.BUY
    asset_name: Optional[str] = None
    investment_type: Optional[str] = None
    category: Optional[str] = None

    @property
    def label(self) -> str:
        return (self.asset_name or self.investment_type or "Investment").strip()


@dataclass(frozen=True)
class PortfolioMetrics:
    total_patrimony: Decimal = ZERO
    total_invested: Decimal = ZERO
    capital_gain: Decimal = ZERO
    dividends_12m: Decimal = ZERO
    total_profit: Decimal = ZERO
    profitability_percent: Decimal = ZERO
    daily_variation_value: Decimal = ZERO
    daily_variation_percent: Decimal = ZERO


@dataclass(frozen=True)
class Account:
    id: str
    name: str = ""
    opening_balance: Any = ZERO
    archived: bool = False


@dataclass(frozen=True)
class LedgerTransaction:
    """A normalized cash movement on an account or card."""

    id: str
    occurred_at: date
    type: str
    amount: Any
    description: str = ""
    category: Optional[str] = None
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None
    transaction_type: Optional[str] = None
    card_id: Optional[str] = None
    tags: Sequence[str] = ()

    @property
    def is_income(self) -> bool:
        return self.type in INCOME_TYPES

    @property
    def is_expense(self) -> bool:
        return self.type in EXPENSE_TYPES


@dataclass(frozen=True)
class AccountMovement:
    """Aggregated amount of one transaction type between accounts."""

    type: str
    amount: Any
    account_id: Optional[str] = None
    to_account_id: Optional[str] = None


@dataclass(frozen=True)
class Card:
    """A credit card with monthly closing and due days."""

    id: str
    name: str = ""
    closing_day: int = 1
    due_day: int = 10
    limit_total: Any = ZERO
    archived: bool = False


@dataclass(frozen=True)
class AutomationSettings:
    """Complete, defaulted automation configuration for one user."""

    enabled: bool = True
    dollar_alert_threshold: Optional[Decimal] = None
    dollar_lower_threshold: Optional[Decimal] = None
    insight_frequency: InsightFrequency = InsightFrequency.MONTHLY
    push_enabled: bool = True
    email_enabled: bool = True
    internal_enabled: bool = True
    card_due_days: int = 3
    investment_drop_pct: Decimal = Decimal("2")
    spending_spike_pct: Decimal = Decimal("20")
    category_share_pct: Decimal = Decimal("40")
    monthly_report_enabled: bool = True
    market_refresh_enabled: bool = True
    config: Mapping[str, Any] = field(default_factory=dict)
    last_run_at: Optional[datetime] = None
    last_status: Optional[RunStatus] = None
    last_error: Optional[str] = None

    @property
    def notification_channels(self) -> tuple[str, ...]:
        """Enabled delivery channels for a run's insights, in delivery order."""

        flags = (("internal", self.internal_enabled), ("push", self.push_enabled), ("email", self.email_enabled))
        return tuple(name for name, enabled in flags if enabled)


@dataclass(frozen=True)
class Insight:
    period: str
    type: str
    title: str
    body: str
    severity: Severity
    source: InsightSource = InsightSource.AUTOMATION
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExpenseRow:
    """One expense line of a monthly report."""

    id: str
    date: date
    description: str
    category: str
    amount: Decimal
    expense_type: str
    source: str = "transaction"


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    value: Decimal
    percent: Decimal = ZERO


@dataclass(frozen=True)
class MonthlyReportSummary:
    month: str
    month_label: str
    income: Decimal
    expense: Decimal
    balance: Decimal
    previous_expense: Decimal
    delta: Decimal
    delta_percent: Optional[Decimal]
    top_category: Optional[str]
    top_category_total: Decimal
    categories: list[CategoryTotal]
    row_count: int
    highlights: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MonthlyReport:
    summary: MonthlyReportSummary
    movements: list[ExpenseRow]
    rows: list[ExpenseRow]


@dataclass(frozen=True)
class InsightBatch:
    period: str
    insights: list[Insight]
    report: MonthlyReport


__all__ = [
    "CENT",
    "ZERO",
    "to_decimal",
    "round_money",
    "Operation",
    "Severity",
    "InsightSource",
    "InsightFrequency",
    "RunStatus",
    "INCOME_TYPES",
    "EXPENSE_TYPES",
    "InvestmentPosition",
    "InvestmentPurchase",
    "PortfolioMetrics",
    "Account",
    "LedgerTransaction",
    "AccountMovement",
    "Card",
    "AutomationSettings",
    "Insight",
    "ExpenseRow",
    "CategoryTotal",
    "MonthlyReportSummary",
    "MonthlyReport",
    "InsightBatch",
]
