"""Monthly expense report: totals, category breakdown, top movements and highlights."""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .categorizer import Categorizer, KeywordCategorizer, normalize_text
from .models import (
    ZERO,
    CategoryTotal,
    ExpenseRow,
    InvestmentPurchase,
    LedgerTransaction,
    MonthlyReport,
    MonthlyReportSummary,
    Operation,
    round_money,
    to_decimal,
)
from .periods import MonthRange, normalize_month_key

HUNDRED = Decimal("100")
MAX_HIGHLIGHTS = 6
DEFAULT_TOP_N = 10
UNCATEGORIZED = "Uncategorized"

_DELIVERY_TERMS = ("delivery", "ifood", "uber eats", "rappi", "lanche", "restaurante", "pizza", "hamburguer")
_SUBSCRIPTION_TERMS = ("assinatura", "netflix", "spotify", "prime", "hbo", "disney", "youtube", "apple", "cloud")
_PIX_PREFIX = re.compile(r"^pix\b", re.IGNORECASE)


def format_money(value: Decimal) -> str:
    return f"R$ {round_money(value):,.2f}"


def format_percent(value: Decimal) -> str:
    return f"{value:.2f}%"


def dedupe_lines(lines: Iterable[str], limit: int = MAX_HIGHLIGHTS) -> list[str]:
    """Collapse whitespace and drop accent/case-insensitive duplicates."""

    seen: set[str] = set()
    output: list[str] = []
    for line in lines:
        cleaned = " ".join(line.split())
        key = normalize_text(cleaned)
        if not key or key in seen:
            continue
        seen.add(key)
        output.append(cleaned)
        if len(output) >= limit:
            break
    return output


def classify_expense(tx: LedgerTransaction) -> str:
    if tx.type == "card_payment" or tx.card_id:
        return "card"
    if (tx.transaction_type or "").lower() == "pix":
        return "pix"
    if any(normalize_text(tag) == "pix" for tag in tx.tags or ()):
        return "pix"
    if _PIX_PREFIX.match(tx.description or ""):
        return "pix"
    if "invest" in normalize_text(tx.category):
        return "investment"
    return "expense" if tx.type == "expense" else tx.type or "expense"


def expense_rows(
    transactions: Iterable[LedgerTransaction],
    categorizer: Optional[Categorizer] = None,
) -> list[ExpenseRow]:
    """Map expense-type transactions to report rows.

    Rows without a category are labelled by ``categorizer`` in one batch.
    Non-positive amounts are skipped.
    """

    expenses = []
    for tx in transactions:
        if not tx.is_expense:
            continue
        amount = abs(to_decimal(tx.amount))
        if amount <= 0:
            continue
        expenses.append((tx, amount))

    missing = [tx.description or "" for tx, _ in expenses if not (tx.category or "").strip()]
    labels = iter((categorizer or KeywordCategorizer()).categorize(missing) if missing else [])

    rows = []
    for tx, amount in expenses:
        category = (tx.category or "").strip() or next(labels, UNCATEGORIZED) or UNCATEGORIZED
        rows.append(
            ExpenseRow(
                id=tx.id,
                date=tx.occurred_at,
                description=(tx.description or "").strip() or "Entry",
                category=category,
                amount=round_money(amount),
                expense_type=classify_expense(tx),
            )
        )
    return rows


def investment_rows(purchases: Iterable[InvestmentPurchase]) -> list[ExpenseRow]:
    rows = []
    for purchase in purchases:
        amount = abs(to_decimal(purchase.amount))
        if amount <= 0 or purchase.date is None:
            continue
        verb = "Sale" if Operation.parse(purchase.operation) is Operation.SELL else "Contribution"
        rows.append(
            ExpenseRow(
                id=purchase.id,
                date=purchase.date,
                description=f"{verb} {purchase.label}",
                category=(purchase.category or "").strip() or "Investimentos",
                amount=round_money(amount),
                expense_type="investment",
                source="investment",
            )
        )
    return rows


def category_totals(rows: Sequence[ExpenseRow]) -> tuple[Decimal, list[CategoryTotal]]:
    total = sum((row.amount for row in rows), ZERO)
    grouped: dict[str, Decimal] = {}
    for row in rows:
        key = row.category or UNCATEGORIZED
        grouped[key] = grouped.get(key, ZERO) + row.amount

    categories = [
        CategoryTotal(
            name=name,
            value=round_money(value),
            percent=round_money(value / total * HUNDRED) if total > 0 else ZERO,
        )
        for name, value in grouped.items()
    ]
    categories.sort(key=lambda item: (-abs(item.value), item.name))
    return round_money(total), categories


def top_movements(rows: Sequence[ExpenseRow], limit: int = DEFAULT_TOP_N) -> list[ExpenseRow]:
    ordered = sorted(rows, key=lambda row: (-row.amount, row.date, row.description))
    return ordered[: max(0, limit)]


def _delivery_total(rows: Sequence[ExpenseRow]) -> Decimal:
    matched = (
        row.amount
        for row in rows
        if any(term in normalize_text(f"{row.description} {row.category}") for term in _DELIVERY_TERMS)
    )
    return round_money(sum(matched, ZERO))


def _subscription_total(rows: Sequence[ExpenseRow]) -> Decimal:
    matched = (
        row.amount
        for row in rows
        if any(term in normalize_text(f"{row.description} {row.category}") for term in _SUBSCRIPTION_TERMS)
    )
    return round_money(sum(matched, ZERO))


def build_highlights(
    rows: Sequence[ExpenseRow],
    label: str,
    total: Decimal,
    previous_total: Decimal,
    delta: Decimal,
    delta_percent: Optional[Decimal],
    categories: Sequence[CategoryTotal],
) -> list[str]:
    if not rows or total <= 0:
        return ["No expenses recorded in the selected period."]

    lines: list[str] = []
    top = categories[0] if categories else None
    if top is not None:
        lines.append(
            f"Largest category in {label}: {top.name} ({format_money(top.value)}, "
            f"{format_percent(top.percent)} of the total)."
        )

    if previous_total > 0 and delta_percent is not None:
        if delta_percent > 5:
            lines.append(
                f"You spent {format_percent(abs(delta_percent))} more than last month "
                f"({format_money(abs(delta))} increase)."
            )
        elif delta_percent < -5:
            lines.append(
                f"You cut spending by {format_percent(abs(delta_percent))} versus last month "
                f"({format_money(abs(delta))} saved)."
            )
        else:
            lines.append(
                f"Spending is roughly flat compared to last month "
                f"({format_percent(abs(delta_percent))} change)."
            )
    else:
        lines.append("Not enough history to compare with the previous month.")

    if top is not None and top.percent >= 35:
        lines.append(
            f"Cutting {top.name} by 10% would save about {format_money(top.value / 10)} next month."
        )

    delivery = _delivery_total(rows)
    if delivery > 0 and delivery / total * HUNDRED >= 8:
        lines.append(
            f"Delivery and ready-made food took {format_money(delivery)}. Planning meals can reduce it."
        )

    subscriptions = _subscription_total(rows)
    if subscriptions > 0:
        lines.append(
            f"Subscriptions and recurring services added up to {format_money(subscriptions)}. "
            "Review plans you rarely use."
        )

    biggest = top_movements(rows, 1)
    if biggest:
        row = biggest[0]
        lines.append(
            f"Largest single expense: {row.description} ({format_money(row.amount)} on {row.date.isoformat()})."
        )

    return dedupe_lines(lines)


def _income_total(transactions: Iterable[LedgerTransaction], month_range: MonthRange) -> Decimal:
    income = ZERO
    for tx in transactions:
        if not tx.is_income or not month_range.contains(tx.occurred_at):
            continue
        amount = abs(to_decimal(tx.amount))
        if amount > 0:
            income += amount
    return round_money(income)


def build_report(
    transactions: Sequence[LedgerTransaction],
    month: Optional[str] = None,
    *,
    today: Optional[date] = None,
    purchases: Sequence[InvestmentPurchase] = (),
    categorizer: Optional[Categorizer] = None,
    top_n: int = DEFAULT_TOP_N,
    warnings: Sequence[str] = (),
) -> MonthlyReport:
    """Build the monthly report for ``month`` (current month when ``None``).

    ``transactions`` and ``purchases`` may span any range; rows are grouped
    into the month and the month before it. Deterministic for fixed inputs.
    """

    key = normalize_month_key(month, today=today)
    month_range = MonthRange.for_month(key)

    all_rows = expense_rows(transactions, categorizer) + investment_rows(purchases)
    current = [row for row in all_rows if month_range.contains(row.date)]
    previous = [row for row in all_rows if month_range.contains_previous(row.date)]
    current.sort(key=lambda row: (row.date, row.description))

    expense, categories = category_totals(current)
    previous_expense, _ = category_totals(previous)
    income = _income_total(transactions, month_range)
    delta = round_money(expense - previous_expense)
    delta_percent = round_money(delta / previous_expense * HUNDRED) if previous_expense > 0 else None
    top = categories[0] if categories else None

    summary = MonthlyReportSummary(
        month=key,
        month_label=month_range.label,
        income=income,
        expense=expense,
        balance=income - expense,
        previous_expense=previous_expense,
        delta=delta,
        delta_percent=delta_percent,
        top_category=top.name if top else None,
        top_category_total=top.value if top else ZERO,
        categories=categories,
        row_count=len(current),
        highlights=build_highlights(
            current, month_range.label, expense, previous_expense, delta, delta_percent, categories
        ),
        warnings=dedupe_lines(warnings, limit=len(warnings) or 1),
    )
    return MonthlyReport(summary=summary, movements=top_movements(current, top_n), rows=current)


__all__ = [
    "DEFAULT_TOP_N",
    "MAX_HIGHLIGHTS",
    "build_highlights",
    "build_report",
    "category_totals",
    "classify_expense",
    "dedupe_lines",
    "expense_rows",
    "format_money",
    "format_percent",
    "investment_rows",
    "top_movements",
]
