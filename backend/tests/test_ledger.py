"""Account balances from opening balances and cash movements."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from finance_cloud.ledger import available_balance, compute_account_balances
from finance_cloud.models import Account, AccountMovement, LedgerTransaction

ACCOUNTS = [
    Account(id="a1", name="Checking", opening_balance="100"),
    Account(id="a2", name="Savings", opening_balance=50),
    Account(id="a3", name="Old", opening_balance=1000, archived=True),
]


def _tx(tx_id: str, tx_type: str, amount, account_id: str, to_account_id: str | None = None) -> LedgerTransaction:
    return LedgerTransaction(
        id=tx_id,
        occurred_at=date(2024, 6, 1),
        type=tx_type,
        amount=amount,
        account_id=account_id,
        to_account_id=to_account_id,
    )


TRANSACTIONS = [
    _tx("t1", "income", 200, "a1"),
    _tx("t2", "expense", 50, "a1"),
    _tx("t3", "transfer", 30, "a1", "a2"),
    _tx("t4", "card_payment", 20, "a2"),
    _tx("t5", "adjustment", 5, "a2"),
]


def test_balances_apply_signed_movements():
    balances = compute_account_balances(ACCOUNTS, TRANSACTIONS)

    assert balances == {"a1": Decimal("220"), "a2": Decimal("65"), "a3": Decimal("1000")}


def test_available_balance_skips_archived_accounts():
    assert available_balance(ACCOUNTS, TRANSACTIONS) == Decimal("285.00")


def test_unknown_account_does_not_count_as_available():
    balances = compute_account_balances(ACCOUNTS, [_tx("t6", "expense", 10, "ghost")])

    assert balances["ghost"] == Decimal("-10")
    assert available_balance(ACCOUNTS, [_tx("t6", "expense", 10, "ghost")]) == Decimal("150.00")


def test_aggregated_movements_match_individual_transactions():
    totals = [
        AccountMovement(type="income", amount="200", account_id="a1"),
        AccountMovement(type="expense", amount=50, account_id="a1"),
        AccountMovement(type="transfer", amount=30, account_id="a1", to_account_id="a2"),
        AccountMovement(type="card_payment", amount=20, account_id="a2"),
        AccountMovement(type="adjustment", amount=5, account_id="a2"),
    ]

    assert compute_account_balances(ACCOUNTS, totals) == compute_account_balances(ACCOUNTS, TRANSACTIONS)
