"""Portfolio metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import UserContext, get_current_user_dependency
from app.db.session import Database
from app.schemas import PortfolioMetricsRequest, PortfolioMetricsResponse, PositionInput
from app.services.store import load_positions
from finance_cloud.models import InvestmentPosition, Operation, PortfolioMetrics
from finance_cloud.valuation import compute_metrics


def to_position(payload: PositionInput) -> InvestmentPosition:
    return InvestmentPosition(
        quantity=payload.quantity,
        average_price=payload.average_price,
        current_price=payload.current_price,
        dividends_received=payload.dividends_received,
        price_history=tuple(payload.price_history),
        operation=Operation.parse(payload.operation),
        asset_name=payload.asset_name,
        investment_type=payload.investment_type,
    )


def metrics_response(metrics: PortfolioMetrics, warnings: list[str] | None = None) -> PortfolioMetricsResponse:
    return PortfolioMetricsResponse(
        total_patrimony=float(metrics.total_patrimony),
        total_invested=float(metrics.total_invested),
        capital_gain=float(metrics.capital_gain),
        dividends_12m=float(metrics.dividends_12m),
        total_profit=float(metrics.total_profit),
        profitability_percent=float(metrics.profitability_percent),
        daily_variation_value=float(metrics.daily_variation_value),
        daily_variation_percent=float(metrics.daily_variation_percent),
        warnings=warnings or [],
    )


def get_investments_router(database: Database) -> APIRouter:
    router = APIRouter(prefix="/investments", tags=["investments"])
    current_user = get_current_user_dependency(database)

    @router.post("/metrics", response_model=PortfolioMetricsResponse)
    async def post_metrics(
        payload: PortfolioMetricsRequest,
        user: UserContext = Depends(current_user),
    ) -> PortfolioMetricsResponse:
        return metrics_response(compute_metrics(to_position(item) for item in payload.positions))

    @router.get("/metrics", response_model=PortfolioMetricsResponse)
    async def get_metrics(
        user: UserContext = Depends(current_user),
        session: AsyncSession = Depends(database.get_session),
    ) -> PortfolioMetricsResponse:
        positions, warnings = await load_positions(session, user.user_id)
        return metrics_response(compute_metrics(positions), warnings)

    return router


__all__ = ["get_investments_router", "metrics_response", "to_position"]
