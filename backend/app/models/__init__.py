"""Database model exports."""

from .finance import (
    Account,
    AutomationSettingsRow,
    CardRow,
    InsightRow,
    Investment,
    MonthlyReportDelivery,
    Transaction,
)
from .user import AuthToken, User

__all__ = [
    "User",
    "AuthToken",
    "Account",
    "Transaction",
    "CardRow",
    "Investment",
    "AutomationSettingsRow",
    "InsightRow",
    "MonthlyReportDelivery",
]
