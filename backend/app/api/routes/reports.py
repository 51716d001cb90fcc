"""Monthly report endpoints: JSON summary, spreadsheet download and delivery history."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import UserContext, get_current_user_dependency
from app.config import AppSettings
from app.db.session import Database
from app.models import MonthlyReportDelivery
from app.schemas import (
    CategoryTotalSchema,
    ExpenseRowSchema,
    MonthlyReportResponse,
    MonthlyReportSummarySchema,
    ReportDeliverySchema,
    ReportHistoryResponse,
)
from app.services.reports import (
    build_monthly_report,
    list_delivery_history,
    record_delivery,
    render_workbook,
    workbook_filename,
)
from finance_cloud.models import ExpenseRow, MonthlyReport

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _row_schema(row: ExpenseRow) -> ExpenseRowSchema:
    return ExpenseRowSchema(
        id=row.id,
        date=row.date,
        description=row.description,
        category=row.category,
        amount=float(row.amount),
        expense_type=row.expense_type,
        source=row.source,
    )


def report_response(report: MonthlyReport) -> MonthlyReportResponse:
    summary = report.summary
    return MonthlyReportResponse(
        summary=MonthlyReportSummarySchema(
            month=summary.month,
            month_label=summary.month_label,
            income=float(summary.income),
            expense=float(summary.expense),
            balance=float(summary.balance),
            previous_expense=float(summary.previous_expense),
            delta=float(summary.delta),
            delta_percent=float(summary.delta_percent) if summary.delta_percent is not None else None,
            top_category=summary.top_category,
            top_category_total=float(summary.top_category_total),
            categories=[
                CategoryTotalSchema(name=item.name, value=float(item.value), percent=float(item.percent))
                for item in summary.categories
            ],
            row_count=summary.row_count,
            highlights=list(summary.highlights),
            warnings=list(summary.warnings),
        ),
        movements=[_row_schema(row) for row in report.movements],
    )


def delivery_schema(row: MonthlyReportDelivery) -> ReportDeliverySchema:
    return ReportDeliverySchema(
        id=row.id,
        reference_month=row.reference_month,
        recipient_email=row.recipient_email,
        total_amount=float(row.total_amount or 0),
        status=row.status,
        details=dict(row.details or {}),
        sent_at=row.sent_at,
    )


def get_reports_router(database: Database, settings: AppSettings) -> APIRouter:
    router = APIRouter(prefix="/reports/monthly", tags=["reports"])
    current_user = get_current_user_dependency(database)

    @router.get("/summary", response_model=MonthlyReportResponse)
    async def get_summary(
        month: str | None = Query(default=None, examples=["2024-06"]),
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> MonthlyReportResponse:
        report = await build_monthly_report(session, user.user_id, month, top_n=settings.report_top_n)
        return report_response(report)

    @router.get("/excel")
    async def get_excel(
        month: str | None = Query(default=None, examples=["2024-06"]),
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> Response:
        report = await build_monthly_report(session, user.user_id, month, top_n=settings.report_top_n)
        content = render_workbook(report)
        await record_delivery(session, user.user_id, report, recipient_email=user.email)
        filename = workbook_filename(report)
        logger.info("Rendered %s for user %s (%d rows)", filename, user.user_id, report.summary.row_count)
        return Response(
            content=content,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.get("/history", response_model=ReportHistoryResponse)
    async def get_history(
        limit: int | None = Query(default=None),
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> ReportHistoryResponse:
        rows = await list_delivery_history(
            session, user.user_id, limit if limit is not None else settings.report_history_limit
        )
        return ReportHistoryResponse(history=[delivery_schema(row) for row in rows])

    return router


__all__ = ["delivery_schema", "get_reports_router", "report_response"]
