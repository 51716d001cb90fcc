"""Portfolio-level metrics computed from signed investment positions."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from .models import (
    ZERO,
    InvestmentPosition,
    Operation,
    PortfolioMetrics,
    round_money,
    to_decimal,
)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class _SignedPosition:
    """Position with every numeric field sanitized and the sign applied once."""

    signed_quantity: Decimal
    average_price: Decimal
    current_price: Decimal
    dividends: Decimal
    last_price: Decimal
    previous_price: Decimal

    @property
    def has_daily_variation(self) -> bool:
        return self.last_price > 0 and self.previous_price > 0


def _sign_position(position: InvestmentPosition) -> _SignedPosition:
    operation = Operation.parse(position.operation)
    quantity = abs(to_decimal(position.quantity)) * operation.sign
    history = list(position.price_history or ())
    last_price = to_decimal(history[-1]) if len(history) >= 1 else ZERO
    previous_price = to_decimal(history[-2]) if len(history) >= 2 else ZERO
    return _SignedPosition(
        signed_quantity=quantity,
        average_price=to_decimal(position.average_price),
        current_price=to_decimal(position.current_price),
        dividends=to_decimal(position.dividends_received),
        last_price=last_price,
        previous_price=previous_price,
    )


def compute_metrics(positions: Iterable[InvestmentPosition]) -> PortfolioMetrics:
    """Aggregate positions into portfolio metrics.

    Sells subtract from patrimony and invested capital. Daily variation is
    taken only from positions whose last two price points are both positive.
    Never raises; empty input yields all-zero metrics.
    """

    patrimony = ZERO
    invested = ZERO
    dividends = ZERO
    variation_value = ZERO
    variation_base = ZERO

    for position in positions:
        signed = _sign_position(position)
        patrimony += signed.signed_quantity * signed.current_price
        invested += signed.signed_quantity * signed.average_price
        dividends += signed.dividends
        if signed.has_daily_variation:
            variation_value += (signed.last_price - signed.previous_price) * signed.signed_quantity
            variation_base += signed.previous_price * signed.signed_quantity

    total_patrimony = round_money(patrimony)
    total_invested = round_money(invested)
    capital_gain = total_patrimony - total_invested
    dividends_12m = round_money(dividends)
    total_profit = capital_gain + dividends_12m

    profitability = total_profit / total_invested * HUNDRED if total_invested > 0 else ZERO
    variation_percent = variation_value / variation_base * HUNDRED if variation_base > 0 else ZERO

    return PortfolioMetrics(
        total_patrimony=total_patrimony,
        total_invested=total_invested,
        capital_gain=capital_gain,
        dividends_12m=dividends_12m,
        total_profit=total_profit,
        profitability_percent=profitability,
        daily_variation_value=round_money(variation_value),
        daily_variation_percent=variation_percent,
    )


def position_drop_percent(position: InvestmentPosition) -> Decimal | None:
    """Return the recent price change in percent, or ``None`` without a base.

    The base is the penultimate history point when positive, otherwise the
    average price.
    """

    signed = _sign_position(position)
    if signed.signed_quantity == 0:
        return None
    base = signed.previous_price if signed.previous_price > 0 else signed.average_price
    if base <= 0:
        return None
    return (signed.current_price - base) / base * HUNDRED


__all__ = ["compute_metrics", "position_drop_percent"]
