"""Dashboard payload schemas."""

from pydantic import BaseModel

from finpyme.schemas.insight import InsightResponse
from finpyme.schemas.transaction import TransactionResponse


class CategoryExpense(BaseModel):
    category_name: str
    amount: float
    color: str
    formatted: str


class CurrencyContext(BaseModel):
    currency: str
    dollar_type: str
    exchange_rate: float
    rates_live: bool


class DashboardResponse(BaseModel):
    current_balance: float
    monthly_income: float
    monthly_expenses: float
    formatted: dict[str, str]
    currency: CurrencyContext
    recent_transactions: list[TransactionResponse]
    expenses_by_category: list[CategoryExpense]
    ai_insights: list[InsightResponse]
    cash_flow_projections: list[dict]
    inflation_rate: float
    cash_flow_chart: dict
    weekly_metrics: dict
