"""Transaction category service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.models.category import TransactionCategory
from finpyme.schemas.category import CategoryCreate


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_categories(self) -> list[TransactionCategory]:
        result = await self.db.execute(
            select(TransactionCategory).order_by(TransactionCategory.type, TransactionCategory.name)
        )
        return list(result.scalars().all())

    async def create_category(self, data: CategoryCreate) -> TransactionCategory:
        category = TransactionCategory(
            name=data.name,
            type=data.type,
            is_default=data.is_default,
            color=data.color,
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        return category
