"""Pydantic schema exports."""

from .automation import (
    AutomationRunResponse,
    AutomationSettingsResponse,
    AutomationSettingsSchema,
    AutomationSettingsUpdate,
    CronRunResponse,
)
from .insights import InsightListResponse, InsightSchema
from .investments import PortfolioMetricsRequest, PortfolioMetricsResponse, PositionInput
from .reports import (
    CategoryTotalSchema,
    ExpenseRowSchema,
    MonthlyReportResponse,
    MonthlyReportSummarySchema,
    ReportDeliverySchema,
    ReportHistoryResponse,
)

__all__ = [
    "AutomationRunResponse",
    "AutomationSettingsResponse",
    "AutomationSettingsSchema",
    "AutomationSettingsUpdate",
    "CronRunResponse",
    "InsightListResponse",
    "InsightSchema",
    "PortfolioMetricsRequest",
    "PortfolioMetricsResponse",
    "PositionInput",
    "CategoryTotalSchema",
    "ExpenseRowSchema",
    "MonthlyReportResponse",
    "MonthlyReportSummarySchema",
    "ReportDeliverySchema",
    "ReportHistoryResponse",
]
