"""Credit card billing cycles."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from finance_cloud.cards import card_cycle, card_cycles
from finance_cloud.models import Card, LedgerTransaction


def _charge(tx_id: str, day: date, amount, card_id: str = "visa", tx_type: str = "expense") -> LedgerTransaction:
    return LedgerTransaction(id=tx_id, occurred_at=day, type=tx_type, amount=amount, card_id=card_id)


def test_cycle_closes_this_month_before_the_closing_day():
    cycle = card_cycle(Card(id="visa", name="Visa", closing_day=25, due_day=5), date(2024, 6, 22))

    assert cycle.cycle_start == date(2024, 5, 26)
    assert cycle.closing_date == date(2024, 6, 25)
    assert cycle.due_date == date(2024, 7, 5)


def test_cycle_rolls_to_next_month_after_closing():
    cycle = card_cycle(Card(id="visa", closing_day=10, due_day=20), date(2024, 6, 22))

    assert cycle.cycle_start == date(2024, 6, 11)
    assert cycle.closing_date == date(2024, 7, 10)
    assert cycle.due_date == date(2024, 7, 20)


def test_closing_day_is_clamped_to_short_months():
    cycle = card_cycle(Card(id="visa", closing_day=31, due_day=5), date(2024, 2, 10))

    assert cycle.cycle_start == date(2024, 2, 1)
    assert cycle.closing_date == date(2024, 2, 29)
    assert cycle.due_date == date(2024, 3, 5)


def test_invoice_total_counts_charges_inside_the_cycle():
    charges = [
        _charge("in-cycle", date(2024, 6, 1), "300"),
        _charge("closing-day", date(2024, 6, 25), "20.50"),
        _charge("previous-cycle", date(2024, 5, 25), "50"),
        _charge("payment", date(2024, 6, 2), "100", tx_type="card_payment"),
        _charge("other-card", date(2024, 6, 3), "75", card_id="master"),
    ]

    cycle = card_cycle(Card(id="visa", closing_day=25, due_day=5), date(2024, 6, 22), charges)

    assert cycle.current_total == Decimal("320.50")
    assert cycle.has_open_invoice


def test_archived_cards_are_skipped():
    cards = [Card(id="visa", closing_day=25), Card(id="old", closing_day=25, archived=True)]

    cycles = card_cycles(cards, date(2024, 6, 22), [])

    assert [cycle.card.id for cycle in cycles] == ["visa"]
    assert not cycles[0].has_open_invoice
