"""Core package for the Finance Cloud portfolio and insight analytics."""

from .models import (
    Account,
    AutomationSettings,
    Card,
    Insight,
    InsightBatch,
    InvestmentPosition,
    InvestmentPurchase,
    LedgerTransaction,
    MonthlyReport,
    PortfolioMetrics,
)
from .reports import build_report
from .rules import generate
from .settings import normalize
from .valuation import compute_metrics

__all__ = [
    "Account",
    "AutomationSettings",
    "Card",
    "Insight",
    "InsightBatch",
    "InvestmentPosition",
    "InvestmentPurchase",
    "LedgerTransaction",
    "MonthlyReport",
    "PortfolioMetrics",
    "build_report",
    "compute_metrics",
    "generate",
    "normalize",
]
