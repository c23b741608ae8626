"""Transaction category API routes (shared by all users)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_db
from finpyme.schemas.category import CategoryCreate, CategoryResponse
from finpyme.services.category_service import CategoryService

router = APIRouter()


@router.get("", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).list_categories()


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).create_category(data)
