"""Account balances derived from opening balances and signed cash movements."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence, Union

from .models import ZERO, Account, AccountMovement, LedgerTransaction, round_money, to_decimal

Movement = Union[LedgerTransaction, AccountMovement]

# Effect of each transaction type on its source account.
_SOURCE_SIGN = {
    "income": 1,
    "adjustment": 1,
    "expense": -1,
    "card_payment": -1,
    "transfer": -1,
}


def compute_account_balances(accounts: Sequence[Account], movements: Iterable[Movement]) -> dict[str, Decimal]:
    """Apply ``movements`` (single transactions or per-type totals) to opening balances."""

    balances: dict[str, Decimal] = {account.id: to_decimal(account.opening_balance) for account in accounts}
    for movement in movements:
        amount = to_decimal(movement.amount)
        sign = _SOURCE_SIGN.get(movement.type)
        if sign is not None and movement.account_id:
            balances[movement.account_id] = balances.get(movement.account_id, ZERO) + sign * amount
        if movement.type == "transfer" and movement.to_account_id:
            balances[movement.to_account_id] = balances.get(movement.to_account_id, ZERO) + amount
    return balances


def available_balance(accounts: Sequence[Account], movements: Iterable[Movement]) -> Decimal:
    """Sum of balances over non-archived accounts, rounded to cents."""

    balances = compute_account_balances(accounts, movements)
    total = sum((balances.get(account.id, ZERO) for account in accounts if not account.archived), ZERO)
    return round_money(total)


__all__ = ["Movement", "compute_account_balances", "available_balance"]
