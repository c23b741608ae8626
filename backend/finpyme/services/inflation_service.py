"""Inflation data service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.models.inflation import InflationData
from finpyme.schemas.inflation import InflationCreate


class InflationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest(self) -> InflationData | None:
        """Most recent month on record."""
        result = await self.db.execute(
            select(InflationData)
            .order_by(
                InflationData.year.desc(),
                InflationData.month.desc(),
                InflationData.id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, data: InflationCreate) -> InflationData:
        record = InflationData(
            month=data.month,
            year=data.year,
            rate=data.rate,
            source=data.source,
        )
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)
        return record
