"""Pydantic schemas for monthly reports and their delivery history."""

from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any

from pydantic import BaseModel, Field


class CategoryTotalSchema(BaseModel):
    name: str
    value: float
    percent: float


class ExpenseRowSchema(BaseModel):
    id: str
    date: date_type
    description: str
    category: str
    amount: float
    expense_type: str
    source: str


class MonthlyReportSummarySchema(BaseModel):
    month: str
    month_label: str
    income: float
    expense: float
    balance: float
    previous_expense: float
    delta: float
    delta_percent: float | None = None
    top_category: str | None = None
    top_category_total: float
    categories: list[CategoryTotalSchema]
    row_count: int
    highlights: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class MonthlyReportResponse(BaseModel):
    ok: bool = True
    summary: MonthlyReportSummarySchema
    movements: list[ExpenseRowSchema]


class ReportDeliverySchema(BaseModel):
    id: str
    reference_month: str
    recipient_email: str | None = None
    total_amount: float
    status: str
    details: dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime


class ReportHistoryResponse(BaseModel):
    ok: bool = True
    history: list[ReportDeliverySchema] = Field(default_factory=list)


__all__ = [
    "CategoryTotalSchema",
    "ExpenseRowSchema",
    "MonthlyReportResponse",
    "MonthlyReportSummarySchema",
    "ReportDeliverySchema",
    "ReportHistoryResponse",
]
