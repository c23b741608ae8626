"""AI insight service: stored insights and on-demand rule evaluation."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.models.insight import AiInsight
from finpyme.models.user import User
from finpyme.schemas.insight import InsightCreate
from finpyme.services.currency_service import CurrencyService
from finpyme.services.insight_generator import Insight, generate_insights
from finpyme.services.projection_engine import bucket_transactions
from finpyme.services.transaction_service import TransactionService

logger = structlog.get_logger()


class InsightService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_insights(self, user: User, limit: int | None = None) -> list[AiInsight]:
        query = (
            select(AiInsight)
            .where(AiInsight.user_id == user.id)
            .order_by(AiInsight.created_at.desc(), AiInsight.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_insight(self, data: InsightCreate, user: User) -> AiInsight:
        insight = AiInsight(
            user_id=user.id,
            type=data.type,
            title=data.title,
            description=data.description,
            priority=data.priority,
            metadata_=data.metadata,
        )
        self.db.add(insight)
        await self.db.flush()
        await self.db.refresh(insight)
        return insight

    async def generate(
        self,
        user: User,
        currency: CurrencyService,
        save: bool = True,
        now=None,
    ) -> tuple[list[Insight], list[AiInsight]]:
        """Run every rule over the user's transactions.

        Net-flow trends are read from the trailing weekly buckets. When `save`
        is set, insights are stored unless an unread one from the same rule is
        already stored.
        """
        transactions = await TransactionService(self.db).list_transactions(user, limit=None)
        weekly = bucket_transactions(transactions, "week", now=now)
        insights = generate_insights(
            transactions,
            [agg.net_flow for agg in weekly],
            now=now,
            format_amount=currency.format,
        )

        saved: list[AiInsight] = []
        if save and insights:
            result = await self.db.execute(
                select(AiInsight.metadata_).where(
                    AiInsight.user_id == user.id,
                    AiInsight.is_read.is_(False),
                )
            )
            unread_keys = {(meta or {}).get("insight_key") for meta in result.scalars().all()}
            for insight in insights:
                if insight.id in unread_keys:
                    continue
                row = AiInsight(
                    user_id=user.id,
                    type=insight.type,
                    title=insight.title,
                    description=insight.description,
                    priority=insight.priority,
                    metadata_={
                        **insight.metadata,
                        "insight_key": insight.id,
                        "confidence": insight.confidence,
                        "impact": insight.impact,
                    },
                )
                self.db.add(row)
                saved.append(row)
                unread_keys.add(insight.id)
            await self.db.flush()
            for row in saved:
                await self.db.refresh(row)

        logger.info("insights_generated", user_id=user.id, count=len(insights), saved=len(saved))
        return insights, saved
