"""Pydantic schemas for portfolio metrics."""

from __future__ import annotations

from pydantic import BaseModel, Field


class PositionInput(BaseModel):
    quantity: float = 0.0
    average_price: float = 0.0
    current_price: float = 0.0
    dividends_received: float = 0.0
    price_history: list[float | None] = Field(default_factory=list)
    operation: str = Field(default="BUY", examples=["BUY", "SELL", "compra", "venda"])
    asset_name: str | None = None
    investment_type: str | None = None


class PortfolioMetricsRequest(BaseModel):
    positions: list[PositionInput] = Field(default_factory=list)


class PortfolioMetricsResponse(BaseModel):
    total_patrimony: float
    total_invested: float
    capital_gain: float
    dividends_12m: float
    total_profit: float
    profitability_percent: float
    daily_variation_value: float
    daily_variation_percent: float
    warnings: list[str] = Field(default_factory=list)


__all__ = ["PortfolioMetricsRequest", "PortfolioMetricsResponse", "PositionInput"]
