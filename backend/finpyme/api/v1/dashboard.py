"""Dashboard API route."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_currency_service, get_db, get_owner
from finpyme.models.user import User
from finpyme.schemas.dashboard import DashboardResponse
from finpyme.services.currency_service import CurrencyService
from finpyme.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/{user_id}", response_model=DashboardResponse)
async def get_dashboard(
    granularity: Literal["day", "week", "month", "quarter", "year"] = Query("month"),
    owner: User = Depends(get_owner),
    currency: CurrencyService = Depends(get_currency_service),
    db: AsyncSession = Depends(get_db),
):
    """KPIs, category breakdown, insights, projections and chart series in one call."""
    return await DashboardService(db).get_dashboard(owner, currency, granularity=granularity)
