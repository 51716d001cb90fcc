"""Insight rule engine.

Each rule inspects the month's figures and emits at most one :class:`Insight`.
Rules are independent of each other; the monthly report is computed first and
shared by all of them. Rate-dependent rules are skipped when the reference
rate is not positive, which is how an unavailable quote is represented.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence

from .cards import CardCycle, card_cycles
from .ledger import Movement, available_balance
from .models import (
    Account,
    AutomationSettings,
    Card,
    Insight,
    InsightBatch,
    InvestmentPosition,
    LedgerTransaction,
    MonthlyReport,
    Severity,
    round_money,
    to_decimal,
)
from .periods import MonthRange, normalize_month_key
from .reports import build_report, format_money, format_percent
from .valuation import position_drop_percent

OUTLIER_FLOOR = Decimal("80")
OUTLIER_FACTOR = Decimal("2.4")


def _scalar(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


@dataclass(frozen=True)
class RuleContext:
    """Figures shared by every rule for one evaluation."""

    period: str
    month_range: MonthRange
    today: date
    report: MonthlyReport
    settings: AutomationSettings
    reference_rate: Decimal
    accounts: Sequence[Account]
    movements: Sequence[Movement]
    positions: Sequence[InvestmentPosition]
    category_share_pct: Decimal
    cycles: Sequence[CardCycle] = ()

    @property
    def income(self) -> Decimal:
        return self.report.summary.income

    @property
    def expense(self) -> Decimal:
        return self.report.summary.expense

    def insight(
        self,
        insight_type: str,
        title: str,
        body: str,
        severity: Severity,
        **metadata: Any,
    ) -> Insight:
        return Insight(
            period=self.period,
            type=insight_type,
            title=title,
            body=body,
            severity=severity,
            metadata={key: _scalar(value) for key, value in metadata.items()},
        )


Rule = Callable[[RuleContext], Optional[Insight]]


def overview_rule(ctx: RuleContext) -> Optional[Insight]:
    return ctx.insight(
        "overview",
        f"Spending summary ({ctx.month_range.label})",
        f"Total spending this month: {format_money(ctx.expense)}.",
        Severity.INFO,
        income=ctx.income,
        expense=ctx.expense,
    )


def balance_rule(ctx: RuleContext) -> Optional[Insight]:
    if ctx.expense > ctx.income:
        deficit = ctx.expense - ctx.income
        return ctx.insight(
            "balance_deficit",
            "Spending above income",
            f"Expenses exceeded income by {format_money(deficit)} in {ctx.month_range.label}.",
            Severity.WARNING,
            income=ctx.income,
            expense=ctx.expense,
            deficit=deficit,
        )
    if ctx.income > ctx.expense:
        surplus = ctx.income - ctx.expense
        return ctx.insight(
            "balance_surplus",
            "Income above spending",
            f"You kept {format_money(surplus)} of your income in {ctx.month_range.label}.",
            Severity.SUCCESS,
            income=ctx.income,
            expense=ctx.expense,
            surplus=surplus,
        )
    return None


def category_focus_rule(ctx: RuleContext) -> Optional[Insight]:
    summary = ctx.report.summary
    if not summary.top_category or ctx.expense <= 0:
        return None
    share = summary.top_category_total / ctx.expense * 100
    if share <= ctx.category_share_pct:
        return None
    return ctx.insight(
        "category_focus",
        f"Leading category: {summary.top_category}",
        f"{summary.top_category} accounts for {format_percent(share)} of spending "
        f"({format_money(summary.top_category_total)}).",
        Severity.INFO,
        category=summary.top_category,
        category_total=summary.top_category_total,
        share=share,
        threshold=ctx.category_share_pct,
        expense=ctx.expense,
    )


def spending_trend_rule(ctx: RuleContext) -> Optional[Insight]:
    summary = ctx.report.summary
    previous = summary.previous_expense
    if previous <= 0:
        return None
    delta_percent = (ctx.expense - previous) / previous * 100
    metadata = {
        "expense": ctx.expense,
        "previous_expense": previous,
        "delta_percent": delta_percent,
        "threshold": ctx.settings.spending_spike_pct,
    }
    if delta_percent >= 0:
        severity = Severity.WARNING if delta_percent >= ctx.settings.spending_spike_pct else Severity.INFO
        return ctx.insight(
            "spending_spike",
            "Spending increase",
            f"Spending rose {format_percent(delta_percent)} compared to last month "
            f"({format_money(previous)}).",
            severity,
            **metadata,
        )
    return ctx.insight(
        "spending_reduction",
        "Spending reduction",
        f"You cut spending by {format_percent(abs(delta_percent))} compared to last month.",
        Severity.SUCCESS,
        **metadata,
    )


def outlier_rule(ctx: RuleContext) -> Optional[Insight]:
    rows = ctx.report.rows
    if not rows:
        return None
    average_ticket = ctx.expense / len(rows)
    limit = max(OUTLIER_FLOOR, average_ticket * OUTLIER_FACTOR)
    biggest = max(rows, key=lambda row: row.amount)
    if biggest.amount < limit:
        return None
    return ctx.insight(
        "outlier",
        "Unusual expense",
        f"Largest unusual expense: {biggest.description} ({format_money(biggest.amount)}).",
        Severity.WARNING,
        description=biggest.description,
        amount=biggest.amount,
        average_ticket=average_ticket,
        limit=limit,
    )


def forecast_rule(ctx: RuleContext) -> Optional[Insight]:
    elapsed = ctx.month_range.days_elapsed(ctx.today)
    if elapsed is None:
        return None
    factor = Decimal(ctx.month_range.days_in_month) / Decimal(elapsed)
    forecast_income = ctx.income * factor
    forecast_expense = ctx.expense * factor
    forecast_net = round_money(forecast_income - forecast_expense)
    body = f"Projected end-of-month balance: {format_money(forecast_net)}."
    if forecast_net < 0:
        body = f"Projected end-of-month balance: {format_money(forecast_net)} (negative)."
    return ctx.insight(
        "forecast",
        "Monthly balance forecast",
        body,
        Severity.SUCCESS if forecast_net >= 0 else Severity.CRITICAL,
        income=ctx.income,
        expense=ctx.expense,
        forecast_income=round_money(forecast_income),
        forecast_expense=round_money(forecast_expense),
        forecast_net=forecast_net,
        days_elapsed=elapsed,
        days_in_month=ctx.month_range.days_in_month,
    )


def available_balance_rule(ctx: RuleContext) -> Optional[Insight]:
    active = [account for account in ctx.accounts if not account.archived]
    if not active:
        return None
    balance = available_balance(ctx.accounts, ctx.movements)
    if balance >= 0:
        return None
    return ctx.insight(
        "available_balance",
        "Negative available balance",
        f"Your active accounts add up to {format_money(balance)}.",
        Severity.WARNING,
        available_balance=balance,
        accounts=len(active),
    )


def dollar_upper_rule(ctx: RuleContext) -> Optional[Insight]:
    threshold = ctx.settings.dollar_alert_threshold
    if ctx.reference_rate <= 0 or threshold is None or ctx.reference_rate < threshold:
        return None
    return ctx.insight(
        "dollar_above_threshold",
        "Dollar above the limit",
        f"USD/BRL at {format_money(ctx.reference_rate)} (upper limit {format_money(threshold)}).",
        Severity.CRITICAL,
        rate=ctx.reference_rate,
        threshold=threshold,
    )


def dollar_lower_rule(ctx: RuleContext) -> Optional[Insight]:
    threshold = ctx.settings.dollar_lower_threshold
    if ctx.reference_rate <= 0 or threshold is None or ctx.reference_rate > threshold:
        return None
    return ctx.insight(
        "dollar_below_threshold",
        "Dollar below the limit",
        f"USD/BRL at {format_money(ctx.reference_rate)} (lower limit {format_money(threshold)}).",
        Severity.CRITICAL,
        rate=ctx.reference_rate,
        threshold=threshold,
    )


def investment_drop_rule(ctx: RuleContext) -> Optional[Insight]:
    worst = None
    worst_drop = None
    for position in ctx.positions:
        drop = position_drop_percent(position)
        if drop is None:
            continue
        if worst_drop is None or drop < worst_drop:
            worst, worst_drop = position, drop
    if worst is None or worst_drop > -ctx.settings.investment_drop_pct:
        return None
    return ctx.insight(
        "investment_drop",
        f"Drop in {worst.label}",
        f"{worst.label} fell {format_percent(abs(worst_drop))} recently.",
        Severity.WARNING,
        asset=worst.label,
        drop_percent=worst_drop,
        threshold=ctx.settings.investment_drop_pct,
    )


def _card_alert(
    ctx: RuleContext, insight_type: str, title: str, verb: str, date_of: Callable[[CardCycle], date]
) -> Optional[Insight]:
    """Nearest open invoice whose date falls within ``card_due_days``; current month only."""

    if not ctx.month_range.contains(ctx.today):
        return None
    upcoming = []
    for cycle in ctx.cycles:
        days = (date_of(cycle) - ctx.today).days
        if cycle.has_open_invoice and 0 <= days <= ctx.settings.card_due_days:
            upcoming.append((days, cycle))
    if not upcoming:
        return None
    days, nearest = min(upcoming, key=lambda item: (item[0], item[1].card.name, item[1].card.id))
    name = nearest.card.name or "Card"
    return ctx.insight(
        insight_type,
        f"{name} {title}",
        f"The {name} invoice {verb} in {days} day(s). Current total: {format_money(nearest.current_total)}.",
        Severity.WARNING,
        card_id=nearest.card.id,
        card=name,
        days=days,
        date=date_of(nearest).isoformat(),
        amount=nearest.current_total,
        window_days=ctx.settings.card_due_days,
        cards=len(upcoming),
    )


def card_due_rule(ctx: RuleContext) -> Optional[Insight]:
    return _card_alert(ctx, "card_due_soon", "invoice due soon", "is due", lambda cycle: cycle.due_date)


def card_closing_rule(ctx: RuleContext) -> Optional[Insight]:
    return _card_alert(ctx, "card_closing_soon", "invoice closing soon", "closes", lambda cycle: cycle.closing_date)


RULES: tuple[Rule, ...] = (
    overview_rule,
    balance_rule,
    category_focus_rule,
    spending_trend_rule,
    outlier_rule,
    forecast_rule,
    available_balance_rule,
    dollar_upper_rule,
    dollar_lower_rule,
    investment_drop_rule,
    card_due_rule,
    card_closing_rule,
)


def generate(
    accounts: Sequence[Account],
    transactions: Sequence[LedgerTransaction],
    settings: AutomationSettings,
    reference_rate: Any,
    period: Optional[str] = None,
    *,
    positions: Sequence[InvestmentPosition] = (),
    cards: Sequence[Card] = (),
    card_charges: Optional[Sequence[LedgerTransaction]] = None,
    movements: Optional[Sequence[Movement]] = None,
    today: Optional[date] = None,
    category_share_pct: Optional[Decimal] = None,
    rules: Sequence[Rule] = RULES,
) -> InsightBatch:
    """Evaluate every rule for ``period`` and return the insights with the report.

    ``period`` is ``YYYY-MM`` or ``None`` for the month containing ``today``.
    ``transactions`` must cover the period and the month before it. Account
    balances use ``movements`` (the whole ledger, possibly aggregated per type)
    and card invoices use ``card_charges``; both default to ``transactions``.
    Raises ``ValidationFailed`` for a malformed period; never raises because
    of a missing or zero reference rate.
    """

    today = today or date.today()
    key = normalize_month_key(period, today=today)
    report = build_report(transactions, key, today=today)
    ctx = RuleContext(
        period=key,
        month_range=MonthRange.for_month(key),
        today=today,
        report=report,
        settings=settings,
        reference_rate=to_decimal(reference_rate),
        accounts=tuple(accounts),
        movements=tuple(transactions if movements is None else movements),
        positions=tuple(positions),
        category_share_pct=to_decimal(
            category_share_pct if category_share_pct is not None else settings.category_share_pct
        ),
        cycles=tuple(card_cycles(cards, today, transactions if card_charges is None else card_charges)),
    )
    insights = [insight for insight in (rule(ctx) for rule in rules) if insight is not None]
    return InsightBatch(period=key, insights=insights, report=report)


__all__ = ["RULES", "Rule", "RuleContext", "generate"]
