"""Dashboard aggregation: KPIs, breakdowns and chart data in one payload."""

from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.models.user import User
from finpyme.services import projection_engine as engine
from finpyme.services.chart_scaler import scaled_series
from finpyme.services.currency_service import CurrencyService
from finpyme.services.inflation_service import InflationService
from finpyme.services.insight_service import InsightService
from finpyme.services.projection_service import ProjectionService
from finpyme.services.transaction_service import TransactionService


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_dashboard(
        self,
        user: User,
        currency: CurrencyService,
        granularity: str = "month",
        now: datetime | None = None,
    ) -> dict:
        now = now or datetime.now(timezone.utc)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        month_end = month_start + relativedelta(months=1)

        transactions = TransactionService(self.db)
        total_income, total_expenses = await transactions.totals(user)
        monthly_income, monthly_expenses = await transactions.totals(user, month_start, month_end)
        recent = await transactions.list_transactions(user, limit=10)
        by_category = await transactions.expenses_by_category(user, month_start, month_end)

        insights = await InsightService(self.db).list_insights(user, limit=3)
        projections = await ProjectionService(self.db).effective_rows(user, limit=8)
        inflation = await InflationService(self.db).latest()

        # Chart and weekly analysis only need the window the largest bucketing reaches
        window = await transactions.list_since(user, now - timedelta(days=366 * 5))
        aggregates = engine.bucket_transactions(window, granularity, now=now)
        weekly = engine.weekly_metrics(window, now=now)

        current_balance = total_income - total_expenses
        return {
            "current_balance": current_balance,
            "monthly_income": monthly_income,
            "monthly_expenses": monthly_expenses,
            "formatted": {
                "current_balance": currency.format(current_balance),
                "monthly_income": currency.format(monthly_income),
                "monthly_expenses": currency.format(monthly_expenses),
                "monthly_net_flow": currency.format(monthly_income - monthly_expenses),
            },
            "currency": {
                "currency": currency.config.display_currency,
                "dollar_type": currency.config.dollar_type,
                "exchange_rate": currency.exchange_rate,
                "rates_live": currency.snapshot.is_live,
            },
            "recent_transactions": recent,
            "expenses_by_category": [
                {**row, "formatted": currency.format(row["amount"])} for row in by_category
            ],
            "ai_insights": insights,
            "cash_flow_projections": projections,
            "inflation_rate": float(inflation.rate) if inflation else 0.0,
            "cash_flow_chart": {
                "granularity": granularity,
                "labels": [a.label for a in aggregates],
                "income": scaled_series(currency.to_display(a.income) for a in aggregates),
                "expenses": scaled_series(currency.to_display(a.expense) for a in aggregates),
                "net_flow": scaled_series(currency.to_display(a.net_flow) for a in aggregates),
            },
            "weekly_metrics": weekly.to_dict(),
        }
