"""Transaction management service."""

from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.core.exceptions import NotFoundError
from finpyme.models.category import TransactionCategory
from finpyme.models.transaction import Transaction
from finpyme.models.user import User
from finpyme.schemas.transaction import TransactionCreate

logger = structlog.get_logger()


class TransactionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_transactions(self, user: User, limit: int | None = 50) -> list[Transaction]:
        """Most recent first."""
        query = (
            select(Transaction)
            .where(Transaction.user_id == user.id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_since(self, user: User, since: datetime) -> list[Transaction]:
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.user_id == user.id, Transaction.date >= since)
            .order_by(Transaction.date)
        )
        return list(result.scalars().all())

    async def create_transaction(self, data: TransactionCreate, user: User) -> Transaction:
        category = await self.db.get(TransactionCategory, data.category_id)
        if category is None:
            raise NotFoundError("Category")

        txn = Transaction(
            user_id=user.id,
            category_id=data.category_id,
            description=data.description,
            amount=data.amount,
            currency=data.currency,
            type=data.type,
            date=data.date,
        )
        self.db.add(txn)
        await self.db.flush()
        await self.db.refresh(txn)

        logger.info("transaction_created", user_id=user.id, transaction_id=txn.id, type=txn.type)
        return txn

    async def totals(
        self,
        user: User,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[float, float]:
        """(income, expenses) summed over the optional `[start, end)` range."""
        query = (
            select(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.user_id == user.id)
            .group_by(Transaction.type)
        )
        if start is not None:
            query = query.where(Transaction.date >= start)
        if end is not None:
            query = query.where(Transaction.date < end)

        sums = {row[0]: float(row[1] or 0) for row in (await self.db.execute(query)).all()}
        return sums.get("income", 0.0), sums.get("expense", 0.0)

    async def expenses_by_category(
        self,
        user: User,
        start: datetime,
        end: datetime,
    ) -> list[dict]:
        result = await self.db.execute(
            select(
                TransactionCategory.name,
                TransactionCategory.color,
                func.coalesce(func.sum(Transaction.amount), 0).label("amount"),
            )
            .join(TransactionCategory, Transaction.category_id == TransactionCategory.id)
            .where(
                Transaction.user_id == user.id,
                Transaction.type == "expense",
                Transaction.date >= start,
                Transaction.date < end,
            )
            .group_by(TransactionCategory.name, TransactionCategory.color)
            .order_by(func.sum(Transaction.amount).desc())
        )
        return [
            {"category_name": name, "color": color or "#6B7280", "amount": float(amount or 0)}
            for name, color, amount in result.all()
        ]
