"""Inflation data API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_current_user, get_db
from finpyme.core.exceptions import NotFoundError
from finpyme.models.user import User
from finpyme.schemas.inflation import InflationCreate, InflationResponse
from finpyme.services.inflation_service import InflationService

router = APIRouter()


@router.get("/latest", response_model=InflationResponse)
async def latest_inflation(db: AsyncSession = Depends(get_db)):
    record = await InflationService(db).latest()
    if record is None:
        raise NotFoundError("Inflation data")
    return record


@router.post("", response_model=InflationResponse, status_code=201)
async def create_inflation(
    data: InflationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await InflationService(db).create(data)
