"""Cash-flow projection and scenario schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, model_validator

Granularity = Literal["day", "week", "month", "quarter", "year"]


class ProjectionCreate(BaseModel):
    date: datetime
    projected_income: Decimal = Field(ge=0, max_digits=15, decimal_places=2)
    projected_expenses: Decimal = Field(ge=0, max_digits=15, decimal_places=2)
    net_flow: Decimal | None = None

    @model_validator(mode="after")
    def fill_net_flow(self):
        if self.net_flow is None:
            self.net_flow = self.projected_income - self.projected_expenses
        return self


class ProjectionResponse(BaseModel):
    id: int
    user_id: int
    date: datetime
    projected_income: Decimal
    projected_expenses: Decimal
    net_flow: Decimal
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ScenarioInput(BaseModel):
    name: str = "Escenario Personalizado"
    income_growth: float = Field(0.0, ge=-100, le=500)
    expense_reduction: float = Field(0.0, ge=-100, le=100)
    one_time_income: float = Field(0.0, ge=0)
    one_time_expense: float = Field(0.0, ge=0)
    market_growth: float = Field(0.0, ge=-100, le=500)
    inflation_rate: float = Field(0.0, ge=0, le=1000)
    time_frame: int = Field(6, ge=1, le=60)


class SimulationRequest(BaseModel):
    scenario: ScenarioInput = ScenarioInput()
    granularity: Granularity = "month"
    forecast_periods: int = Field(6, ge=0, le=36)


class MetricsResponse(BaseModel):
    total_projected_income: float
    total_projected_expenses: float
    net_projected_flow: float
    worst_case: float
    best_case: float
    average_monthly_flow: float
    break_even_point: float
    risk_level: str
    formatted: dict[str, str] = {}


class SimulationResponse(BaseModel):
    scenario: ScenarioInput
    granularity: str
    currency: str
    dollar_type: str
    exchange_rate: float
    metrics: MetricsResponse
    historical: list[dict]
    adjusted: list[dict]
    forecast: dict
    chart: dict
