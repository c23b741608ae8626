"""AI insight API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_currency_service, get_db, get_owner
from finpyme.models.user import User
from finpyme.schemas.insight import InsightCreate, InsightGenerationResponse, InsightResponse
from finpyme.services.currency_service import CurrencyService
from finpyme.services.insight_service import InsightService

router = APIRouter()


@router.get("/{user_id}", response_model=list[InsightResponse])
async def list_insights(
    limit: int | None = Query(None, ge=1, le=100),
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await InsightService(db).list_insights(owner, limit=limit)


@router.post("/{user_id}", response_model=InsightResponse, status_code=201)
async def create_insight(
    data: InsightCreate,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await InsightService(db).create_insight(data, owner)


@router.post("/{user_id}/generate", response_model=InsightGenerationResponse)
async def generate_insights(
    save: bool = Query(True),
    owner: User = Depends(get_owner),
    currency: CurrencyService = Depends(get_currency_service),
    db: AsyncSession = Depends(get_db),
):
    """Evaluate the insight rules now; new ones are stored unless `save=false`."""
    insights, saved = await InsightService(db).generate(owner, currency, save=save)
    return {"insights": [i.to_dict() for i in insights], "saved": saved}
