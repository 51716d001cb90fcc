"""Credit card billing cycles: closing and due dates and the open invoice total."""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable

from .models import ZERO, Card, LedgerTransaction, to_decimal
from .periods import shift_month

# Any cycle touching ``today`` starts and ends inside this distance from it.
CYCLE_LOOKAROUND = timedelta(days=62)


def _on_day(year: int, month: int, day: int) -> date:
    """``day`` of the given month, clamped to the days the month has."""

    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(int(day), 1), last))


@dataclass(frozen=True)
class CardCycle:
    card: Card
    cycle_start: date
    closing_date: date
    due_date: date
    current_total: Decimal = ZERO

    @property
    def has_open_invoice(self) -> bool:
        return self.current_total > 0


def card_cycle(card: Card, today: date, transactions: Iterable[LedgerTransaction] = ()) -> CardCycle:
    """The billing cycle containing ``today`` and the charges booked inside it.

    The cycle closes on ``closing_day`` of this month, or of next month once
    that day has passed. The invoice is due on ``due_day`` of the closing month
    when it falls after the closing day, otherwise in the month after.
    Card payments do not count as charges.
    """

    closing = _on_day(today.year, today.month, card.closing_day)
    if today > closing:
        year, month = shift_month(today.year, today.month, 1)
        closing = _on_day(year, month, card.closing_day)
    prev_year, prev_month = shift_month(closing.year, closing.month, -1)
    cycle_start = _on_day(prev_year, prev_month, card.closing_day) + timedelta(days=1)

    if card.due_day > card.closing_day:
        due = _on_day(closing.year, closing.month, card.due_day)
    else:
        due_year, due_month = shift_month(closing.year, closing.month, 1)
        due = _on_day(due_year, due_month, card.due_day)

    total = sum(
        (
            to_decimal(tx.amount)
            for tx in transactions
            if tx.card_id == card.id and tx.type != "card_payment" and cycle_start <= tx.occurred_at <= closing
        ),
        ZERO,
    )
    return CardCycle(card=card, cycle_start=cycle_start, closing_date=closing, due_date=due, current_total=total)


def card_cycles(cards: Iterable[Card], today: date, transactions: Iterable[LedgerTransaction]) -> list[CardCycle]:
    charges = [tx for tx in transactions if tx.card_id]
    return [card_cycle(card, today, charges) for card in cards if not card.archived]


__all__ = ["CYCLE_LOOKAROUND", "CardCycle", "card_cycle", "card_cycles"]
