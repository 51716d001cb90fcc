"""Monthly report service: data loading, spreadsheet rendering and delivery history."""

from __future__ import annotations

import logging
from datetime import date, datetime
from io import BytesIO
from typing import Any, Mapping

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import IllegalCharacterError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import MonthlyReportDelivery
from app.models.finance import DELIVERY_STATUSES
from app.models.user import utcnow
from app.services.store import load_purchases, load_transactions, store_errors
from finance_cloud.categorizer import Categorizer
from finance_cloud.errors import PersistenceFailed, ReportGenerationFailed, ValidationFailed
from finance_cloud.models import MonthlyReport
from finance_cloud.periods import MonthRange, normalize_month_key
from finance_cloud.reports import DEFAULT_TOP_N, build_report

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 12
MAX_HISTORY_LIMIT = 36
MONEY_FORMAT = '"R$" #,##0.00'
PERCENT_FORMAT = "0.00%"


async def build_monthly_report(
    session: AsyncSession,
    user_id: str,
    month: str | None = None,
    *,
    today: date | None = None,
    categorizer: Categorizer | None = None,
    top_n: int = DEFAULT_TOP_N,
) -> MonthlyReport:
    """Load the month and the month before it, then build the report.

    Investment purchases are included when the investments table exists;
    otherwise the report carries a warning.
    """

    key = normalize_month_key(month, today=today)
    month_range = MonthRange.for_month(key)
    transactions = await load_transactions(
        session,
        user_id,
        start=month_range.previous_start,
        end_exclusive=month_range.end_exclusive,
        types=("income", "adjustment", "expense", "card_payment"),
    )
    purchases, warnings = await load_purchases(
        session, user_id, month_range.previous_start, month_range.end_exclusive
    )
    return build_report(
        transactions,
        key,
        today=today,
        purchases=purchases,
        categorizer=categorizer,
        top_n=top_n,
        warnings=warnings,
    )


def _fit_columns(ws: Any, widths: list[int]) -> None:
    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width


def _write_expenses(wb: Workbook, report: MonthlyReport) -> None:
    ws = wb.create_sheet("Expenses")
    ws.append(["Date", "Description", "Category", "Amount", "Type"])
    for row in report.rows:
        ws.append([row.date.isoformat(), row.description, row.category, float(row.amount), row.expense_type])
    ws.append(["", "TOTAL", "", float(report.summary.expense), ""])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.cell(row=ws.max_row, column=2).font = Font(bold=True)
    for (cell,) in ws.iter_rows(min_row=2, min_col=4, max_col=4):
        cell.number_format = MONEY_FORMAT
    _fit_columns(ws, [14, 48, 24, 18, 18])


def _write_summary(wb: Workbook, report: MonthlyReport) -> None:
    summary = report.summary
    ws = wb.create_sheet("Summary")
    ws.append(["Monthly financial summary", ""])
    ws.append(["Reference month", summary.month_label])
    ws.append(["Income", float(summary.income)])
    ws.append(["Total spent", float(summary.expense)])
    ws.append(["Previous month", float(summary.previous_expense)])
    ws.append(["Change", float(summary.delta)])
    ws.append(
        ["Change (%)", "no baseline" if summary.delta_percent is None else float(summary.delta_percent / 100)]
    )
    ws.append(["Leading category", summary.top_category or "-"])
    ws.append(["Leading category total", float(summary.top_category_total)])
    ws["A1"].font = Font(bold=True)
    for row_index in (3, 4, 5, 6, 9):
        ws.cell(row=row_index, column=2).number_format = MONEY_FORMAT
    if summary.delta_percent is not None:
        ws["B7"].number_format = PERCENT_FORMAT

    ws.append([])
    ws.append(["Totals by category", "", ""])
    ws.append(["Category", "Total", "Share"])
    for category in summary.categories:
        ws.append([category.name, float(category.value), float(category.percent / 100)])
        ws.cell(row=ws.max_row, column=2).number_format = MONEY_FORMAT
        ws.cell(row=ws.max_row, column=3).number_format = PERCENT_FORMAT

    ws.append([])
    ws.append(["Highlights", "", ""])
    for line in summary.highlights:
        ws.append([line])
    if summary.warnings:
        ws.append([])
        ws.append(["Warnings", "", ""])
        for line in summary.warnings:
            ws.append([line])
    _fit_columns(ws, [42, 22, 16])


def render_workbook(report: MonthlyReport) -> bytes:
    """Encode ``report`` as an xlsx file with an Expenses and a Summary sheet.

    Raises ``ReportGenerationFailed``; no partial bytes are returned.
    """

    try:
        wb = Workbook()
        wb.remove(wb.active)
        _write_expenses(wb, report)
        _write_summary(wb, report)
        buffer = BytesIO()
        wb.save(buffer)
    except (IllegalCharacterError, ValueError, TypeError, OSError) as exc:
        logger.exception("Failed to render workbook for %s", report.summary.month)
        raise ReportGenerationFailed("Failed to generate report") from exc
    return buffer.getvalue()


def workbook_filename(report: MonthlyReport) -> str:
    return f"monthly-report-{report.summary.month}.xlsx"


async def record_delivery(
    session: AsyncSession,
    user_id: str,
    report: MonthlyReport,
    *,
    recipient_email: str | None,
    status: str = "sent",
    details: Mapping[str, Any] | None = None,
    sent_at: datetime | None = None,
) -> MonthlyReportDelivery:
    """Insert or update the delivery row for ``(user_id, report month)``."""

    if status not in DELIVERY_STATUSES:
        raise ValidationFailed(f"Invalid delivery status '{status}'")

    summary = report.summary
    values = {
        "recipient_email": recipient_email,
        "total_amount": summary.expense,
        "status": status,
        "details": dict(details or {"row_count": summary.row_count, "top_category": summary.top_category}),
        "sent_at": sent_at or utcnow(),
    }

    async def _existing() -> MonthlyReportDelivery | None:
        async with store_errors("monthly_report_deliveries"):
            result = await session.execute(
                select(MonthlyReportDelivery).where(
                    MonthlyReportDelivery.user_id == user_id,
                    MonthlyReportDelivery.reference_month == summary.month,
                )
            )
        return result.scalar_one_or_none()

    row = await _existing()
    if row is None:
        row = MonthlyReportDelivery(user_id=user_id, reference_month=summary.month, **values)
        session.add(row)
        try:
            async with store_errors("monthly_report_deliveries"):
                await session.commit()
            return row
        except PersistenceFailed as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            await session.rollback()
            row = await _existing()
            if row is None:
                raise

    for key, value in values.items():
        setattr(row, key, value)
    async with store_errors("monthly_report_deliveries"):
        await session.commit()
    return row


def clamp_history_limit(limit: Any) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_HISTORY_LIMIT
    return max(1, min(MAX_HISTORY_LIMIT, value))


async def list_delivery_history(
    session: AsyncSession, user_id: str, limit: Any = DEFAULT_HISTORY_LIMIT
) -> list[MonthlyReportDelivery]:
    async with store_errors("monthly_report_deliveries"):
        result = await session.execute(
            select(MonthlyReportDelivery)
            .where(MonthlyReportDelivery.user_id == user_id)
            .order_by(MonthlyReportDelivery.reference_month.desc())
            .limit(clamp_history_limit(limit))
        )
    return list(result.scalars())


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "MAX_HISTORY_LIMIT",
    "build_monthly_report",
    "clamp_history_limit",
    "list_delivery_history",
    "record_delivery",
    "render_workbook",
    "workbook_filename",
]
