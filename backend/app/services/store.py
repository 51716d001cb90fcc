"""Store access: loaders mapping ORM rows to core models, and error translation."""

from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Sequence

from asyncpg.exceptions import UndefinedTableError
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Account, CardRow, Investment, Transaction
from finance_cloud.errors import PersistenceFailed, SchemaMissing
from finance_cloud.models import (
    Account as CoreAccount,
    AccountMovement,
    Card,
    InvestmentPosition,
    InvestmentPurchase,
    LedgerTransaction,
    Operation,
)

logger = logging.getLogger(__name__)

UNDEFINED_TABLE_SQLSTATE = "42P01"
_SQLITE_MISSING = re.compile(r"no such table:\s*(?P<relation>[\w.]+)", re.IGNORECASE)


def _sqlstate(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str):
                return value
    return None


def _is_undefined_table(exc: DBAPIError) -> bool:
    orig = exc.orig
    if isinstance(orig, UndefinedTableError) or isinstance(getattr(orig, "__cause__", None), UndefinedTableError):
        return True
    return _sqlstate(exc) == UNDEFINED_TABLE_SQLSTATE


def _sqlite_missing_table(exc: DBAPIError) -> str | None:
    """SQLite (test databases) raises a plain ``OperationalError`` for an unknown table."""

    if not isinstance(exc.orig, sqlite3.OperationalError):
        return None
    match = _SQLITE_MISSING.match(str(exc.orig))
    return match.group("relation") if match else None


def missing_relation(exc: SQLAlchemyError, relation: str) -> str | None:
    """Return the missing relation name if ``exc`` signals an undefined table."""

    if not isinstance(exc, DBAPIError):
        return None
    if _is_undefined_table(exc):
        return relation
    return _sqlite_missing_table(exc)


def translate_error(exc: SQLAlchemyError, relation: str) -> Exception:
    missing = missing_relation(exc, relation)
    if missing is not None:
        return SchemaMissing(missing)
    return PersistenceFailed(str(getattr(exc, "orig", None) or exc))


@asynccontextmanager
async def store_errors(relation: str) -> AsyncIterator[None]:
    """Re-raise SQLAlchemy failures as ``SchemaMissing`` or ``PersistenceFailed``."""

    try:
        yield
    except SQLAlchemyError as exc:
        raise translate_error(exc, relation) from exc


def to_core_account(row: Account) -> CoreAccount:
    return CoreAccount(
        id=row.id,
        name=row.name or "",
        opening_balance=row.opening_balance,
        archived=bool(row.archived),
    )


def to_ledger_transaction(row: Transaction) -> LedgerTransaction:
    return LedgerTransaction(
        id=row.id,
        occurred_at=row.occurred_at,
        type=row.type,
        amount=row.amount,
        description=row.description or "",
        category=row.category,
        account_id=row.account_id,
        to_account_id=row.to_account_id,
        transaction_type=row.transaction_type,
        card_id=row.card_id,
        tags=tuple(row.tags or ()),
    )


def to_card(row: CardRow) -> Card:
    return Card(
        id=row.id,
        name=row.name or "",
        closing_day=row.closing_day,
        due_day=row.due_day,
        limit_total=row.limit_total,
        archived=bool(row.archived),
    )


def to_position(row: Investment) -> InvestmentPosition:
    return InvestmentPosition(
        quantity=row.quantity,
        average_price=row.average_price,
        current_price=row.current_price,
        dividends_received=row.dividends_received,
        price_history=tuple(row.price_history or ()),
        operation=Operation.parse(row.operation),
        asset_name=row.asset_name,
        investment_type=row.investment_type,
    )


def to_purchase(row: Investment) -> InvestmentPurchase:
    return InvestmentPurchase(
        id=row.id,
        date=row.start_date or row.created_at.date(),
        amount=row.invested_amount,
        operation=Operation.parse(row.operation),
        asset_name=row.asset_name,
        investment_type=row.investment_type,
        category=row.category,
    )


async def load_accounts(session: AsyncSession, user_id: str) -> list[CoreAccount]:
    async with store_errors("accounts"):
        result = await session.execute(select(Account).where(Account.user_id == user_id))
    return [to_core_account(row) for row in result.scalars()]


async def load_transactions(
    session: AsyncSession,
    user_id: str,
    *,
    start: date | None = None,
    end_exclusive: date | None = None,
    types: Sequence[str] | None = None,
) -> list[LedgerTransaction]:
    stmt = select(Transaction).where(Transaction.user_id == user_id)
    if start is not None:
        stmt = stmt.where(Transaction.occurred_at >= start)
    if end_exclusive is not None:
        stmt = stmt.where(Transaction.occurred_at < end_exclusive)
    if types:
        stmt = stmt.where(Transaction.type.in_(list(types)))
    stmt = stmt.order_by(Transaction.occurred_at.desc(), Transaction.id)
    async with store_errors("transactions"):
        result = await session.execute(stmt)
    return [to_ledger_transaction(row) for row in result.scalars()]


async def load_account_movements(session: AsyncSession, user_id: str) -> list[AccountMovement]:
    """Per-type totals over the whole ledger, enough to derive every account balance."""

    stmt = (
        select(
            Transaction.type,
            Transaction.account_id,
            Transaction.to_account_id,
            func.sum(Transaction.amount),
        )
        .where(Transaction.user_id == user_id)
        .group_by(Transaction.type, Transaction.account_id, Transaction.to_account_id)
    )
    async with store_errors("transactions"):
        result = await session.execute(stmt)
    return [
        AccountMovement(type=tx_type, amount=total, account_id=account_id, to_account_id=to_account_id)
        for tx_type, account_id, to_account_id, total in result.all()
    ]


async def load_cards(session: AsyncSession, user_id: str) -> tuple[list[Card], list[str]]:
    """Active cards and warnings; a missing cards table is not fatal."""

    stmt = select(CardRow).where(CardRow.user_id == user_id, CardRow.archived.is_(False)).order_by(CardRow.name)
    try:
        async with store_errors("cards"):
            result = await session.execute(stmt)
    except SchemaMissing as exc:
        logger.warning("Cards unavailable for user %s: %s", user_id, exc.hint)
        await session.rollback()
        return [], [exc.hint]
    return [to_card(row) for row in result.scalars()], []


async def load_card_charges(
    session: AsyncSession, user_id: str, start: date, end_exclusive: date
) -> list[LedgerTransaction]:
    stmt = (
        select(Transaction)
        .where(
            Transaction.user_id == user_id,
            Transaction.card_id.is_not(None),
            Transaction.occurred_at >= start,
            Transaction.occurred_at < end_exclusive,
        )
        .order_by(Transaction.occurred_at, Transaction.id)
    )
    async with store_errors("transactions"):
        result = await session.execute(stmt)
    return [to_ledger_transaction(row) for row in result.scalars()]


async def load_investments(session: AsyncSession, user_id: str) -> list[Investment]:
    async with store_errors("investments"):
        result = await session.execute(select(Investment).where(Investment.user_id == user_id))
    return list(result.scalars())


async def load_positions(session: AsyncSession, user_id: str) -> tuple[list[InvestmentPosition], list[str]]:
    """Return positions and warnings; a missing investments table is not fatal."""

    try:
        rows = await load_investments(session, user_id)
    except SchemaMissing as exc:
        logger.warning("Investments unavailable for user %s: %s", user_id, exc.hint)
        await session.rollback()
        return [], [exc.hint]
    return [to_position(row) for row in rows], []


async def load_purchases(
    session: AsyncSession, user_id: str, start: date, end_exclusive: date
) -> tuple[list[InvestmentPurchase], list[str]]:
    """Investment contributions dated in ``[start, end_exclusive)``."""

    stmt = select(Investment).where(
        Investment.user_id == user_id,
        Investment.operation.in_(["compra", "BUY", "buy"]),
        Investment.start_date >= start,
        Investment.start_date < end_exclusive,
    )
    try:
        async with store_errors("investments"):
            result = await session.execute(stmt)
    except SchemaMissing as exc:
        logger.warning("Investment purchases unavailable for user %s: %s", user_id, exc.hint)
        await session.rollback()
        return [], ["Investments table not found. Investment purchases were not included."]
    return [to_purchase(row) for row in result.scalars()], []


__all__ = [
    "UNDEFINED_TABLE_SQLSTATE",
    "load_account_movements",
    "load_accounts",
    "load_card_charges",
    "load_cards",
    "load_investments",
    "load_positions",
    "load_purchases",
    "load_transactions",
    "missing_relation",
    "store_errors",
    "to_card",
    "to_core_account",
    "to_ledger_transaction",
    "to_position",
    "to_purchase",
    "translate_error",
]
