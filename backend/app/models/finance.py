"""Accounts, cards, transactions, investments, automation and insight tables."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.user import new_id, utcnow

TRANSACTION_TYPES = ("income", "expense", "transfer", "adjustment", "card_payment")
DELIVERY_STATUSES = ("sent", "skipped", "error")


def _user_fk() -> Any:
    return ForeignKey("users.id", ondelete="CASCADE")


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_user_occurred", "user_id", "occurred_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk())
    occurred_at: Mapped[date] = mapped_column(Date)
    type: Mapped[str] = mapped_column(String(32))
    transaction_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    account_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    to_account_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    card_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CardRow(Base):
    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), index=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    issuer: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    limit_total: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    closing_day: Mapped[int] = mapped_column(Integer, default=1)
    due_day: Mapped[int] = mapped_column(Integer, default=10)
    archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Investment(Base):
    __tablename__ = "investments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), index=True)
    asset_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    investment_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    operation: Mapped[str] = mapped_column(String(16), default="compra")
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=Decimal("0"))
    average_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=Decimal("0"))
    current_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=Decimal("0"))
    dividends_received: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    invested_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    price_history: Mapped[list[Any]] = mapped_column(JSON, default=list)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AutomationSettingsRow(Base):
    __tablename__ = "automations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk(), unique=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    push_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    email_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    internal_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    card_due_days: Mapped[int] = mapped_column(Integer, default=3)
    dollar_alert_threshold: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    dollar_lower_threshold: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    insight_frequency: Mapped[str] = mapped_column(String(16), default="monthly")
    investment_drop_pct: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("2"))
    spending_spike_pct: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("20"))
    category_share_pct: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=Decimal("40"))
    monthly_report_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    market_refresh_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_status: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class InsightRow(Base):
    __tablename__ = "insights"
    __table_args__ = (
        UniqueConstraint("user_id", "period", "insight_type", "source", name="uq_insight_user_period_type_source"),
        Index("ix_insights_user_period", "user_id", "period"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk())
    period: Mapped[str] = mapped_column(String(7))
    insight_type: Mapped[str] = mapped_column(String(64))
    title: Mapped[str] = mapped_column(String(255))
    body: Mapped[str] = mapped_column(Text)
    severity: Mapped[str] = mapped_column(String(16))
    source: Mapped[str] = mapped_column(String(16), default="automation")
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class MonthlyReportDelivery(Base):
    __tablename__ = "monthly_report_deliveries"
    __table_args__ = (
        UniqueConstraint("user_id", "reference_month", name="uq_report_delivery_user_month"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), _user_fk())
    reference_month: Mapped[str] = mapped_column(String(7))
    recipient_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(16), default="sent")
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


__all__ = [
    "Account",
    "AutomationSettingsRow",
    "CardRow",
    "DELIVERY_STATUSES",
    "InsightRow",
    "Investment",
    "MonthlyReportDelivery",
    "TRANSACTION_TYPES",
    "Transaction",
]
