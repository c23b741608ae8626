"""Cash-flow projection service: saved rows plus scenario simulation."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.models.projection import CashFlowProjection
from finpyme.models.user import User
from finpyme.schemas.projection import ProjectionCreate, SimulationRequest
from finpyme.services import projection_engine as engine
from finpyme.services.chart_scaler import scaled_series
from finpyme.services.currency_service import CurrencyService
from finpyme.services.transaction_service import TransactionService

logger = structlog.get_logger()

_MONEY_METRICS = (
    "total_projected_income",
    "total_projected_expenses",
    "net_projected_flow",
    "worst_case",
    "best_case",
    "average_monthly_flow",
)


class ProjectionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_projections(self, user: User, limit: int | None = None) -> list[CashFlowProjection]:
        query = (
            select(CashFlowProjection)
            .where(CashFlowProjection.user_id == user.id)
            .order_by(CashFlowProjection.date)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_projection(self, data: ProjectionCreate, user: User) -> CashFlowProjection:
        projection = CashFlowProjection(
            user_id=user.id,
            date=data.date,
            projected_income=data.projected_income,
            projected_expenses=data.projected_expenses,
            net_flow=data.net_flow,
        )
        self.db.add(projection)
        await self.db.flush()
        await self.db.refresh(projection)
        return projection

    async def effective_rows(self, user: User, limit: int | None = None) -> list[dict]:
        """Saved projections when the user has any, otherwise rows derived from transactions."""
        saved = await self.list_projections(user, limit=limit)
        if saved:
            return [
                {
                    "date": p.date.isoformat(),
                    "projected_income": float(p.projected_income),
                    "projected_expenses": float(p.projected_expenses),
                    "net_flow": float(p.net_flow),
                    "is_projection": True,
                }
                for p in saved
            ]

        transactions = await TransactionService(self.db).list_transactions(user, limit=None)
        rows = [row.to_dict() for row in engine.generate_projections(transactions)]
        return rows[:limit] if limit is not None else rows

    async def simulate(
        self,
        user: User,
        request: SimulationRequest,
        currency: CurrencyService,
        now=None,
    ) -> dict:
        """Bucket the user's transactions and run the scenario, metrics and forecast over them."""
        transactions = await TransactionService(self.db).list_transactions(user, limit=None)
        aggregates = engine.bucket_transactions(transactions, request.granularity, now=now)

        scenario = engine.Scenario(**request.scenario.model_dump())
        adjusted = engine.apply_scenario(aggregates, scenario)
        metrics = engine.calculate_metrics(aggregates, scenario)
        forecast = engine.linear_forecast(
            aggregates,
            periods=request.forecast_periods,
            granularity=request.granularity,
        )

        formatted = {key: currency.format(getattr(metrics, key)) for key in _MONEY_METRICS}
        formatted["break_even_point"] = f"{metrics.break_even_point:.2f}x"

        logger.info(
            "projection_simulated",
            user_id=user.id,
            scenario=scenario.name,
            granularity=request.granularity,
            risk_level=metrics.risk_level,
        )

        series = forecast.chart_series()
        return {
            "scenario": request.scenario,
            "granularity": request.granularity,
            "currency": currency.config.display_currency,
            "dollar_type": currency.config.dollar_type,
            "exchange_rate": currency.exchange_rate,
            "metrics": {**metrics.to_dict(), "formatted": formatted},
            "historical": [a.to_dict() for a in aggregates],
            "adjusted": [a.to_dict() for a in adjusted],
            "forecast": {
                "slope": forecast.slope,
                "intercept": forecast.intercept,
                "points": [p.to_dict() for p in forecast.forecast],
            },
            "chart": {
                "labels": series["labels"],
                "net_flow": scaled_series(currency.to_display(a.net_flow) for a in adjusted),
                "historical": series["historical"],
                "forecast": series["forecast"],
                "volatility": engine.volatility_series(aggregates),
                "seasonal": engine.seasonal_averages(aggregates),
            },
        }
