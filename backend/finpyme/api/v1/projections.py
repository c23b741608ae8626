"""Cash-flow projection API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_currency_service, get_db, get_owner
from finpyme.models.user import User
from finpyme.schemas.projection import (
    ProjectionCreate,
    ProjectionResponse,
    ScenarioInput,
    SimulationRequest,
    SimulationResponse,
)
from finpyme.services.currency_service import CurrencyService
from finpyme.services.projection_engine import base_scenario, predefined_scenarios
from finpyme.services.projection_service import ProjectionService

router = APIRouter()


# Declared before /{user_id} so "scenarios" is not parsed as a user id
@router.get("/scenarios", response_model=list[ScenarioInput])
async def list_scenarios(time_frame: int = Query(6, ge=1, le=60)):
    """Base scenario followed by the predefined ones."""
    scenarios = [base_scenario(time_frame), *predefined_scenarios(time_frame)]
    return [ScenarioInput(**vars(s)) for s in scenarios]


@router.get("/{user_id}", response_model=list[ProjectionResponse])
async def list_projections(
    limit: int | None = Query(None, ge=1, le=120),
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectionService(db).list_projections(owner, limit=limit)


@router.post("/{user_id}", response_model=ProjectionResponse, status_code=201)
async def create_projection(
    data: ProjectionCreate,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectionService(db).create_projection(data, owner)


@router.post("/{user_id}/simulate", response_model=SimulationResponse)
async def simulate_projection(
    data: SimulationRequest,
    owner: User = Depends(get_owner),
    currency: CurrencyService = Depends(get_currency_service),
    db: AsyncSession = Depends(get_db),
):
    """Run a scenario over the owner's transactions without saving anything."""
    return await ProjectionService(db).simulate(owner, data, currency)
