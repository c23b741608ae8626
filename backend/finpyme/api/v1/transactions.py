"""Transaction API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_db, get_owner
from finpyme.models.user import User
from finpyme.schemas.transaction import TransactionCreate, TransactionResponse
from finpyme.services.transaction_service import TransactionService

router = APIRouter()


@router.get("/{user_id}", response_model=list[TransactionResponse])
async def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await TransactionService(db).list_transactions(owner, limit=limit)


@router.post("/{user_id}", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    data: TransactionCreate,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await TransactionService(db).create_transaction(data, owner)
