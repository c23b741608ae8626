"""Notification service.

Expired notifications (``expires_at`` in the past) stay in the table but are
hidden from listings and from the unread count.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.core.exceptions import NotFoundError
from finpyme.models.notification import Notification
from finpyme.models.user import User
from finpyme.schemas.notification import NotificationCreate

logger = structlog.get_logger()


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _active(user: User, now: datetime):
        return (
            Notification.user_id == user.id,
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
        )

    async def list_notifications(self, user: User, limit: int = 20) -> list[Notification]:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            select(Notification)
            .where(*self._active(user, now))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def unread_count(self, user: User) -> int:
        now = datetime.now(timezone.utc)
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                *self._active(user, now),
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    async def create_notification(self, data: NotificationCreate, user: User) -> Notification:
        notification = Notification(
            user_id=user.id,
            type=data.type,
            title=data.title,
            message=data.message,
            priority=data.priority,
            action_url=data.action_url,
            action_text=data.action_text,
            metadata_=data.metadata,
            expires_at=data.expires_at,
        )
        self.db.add(notification)
        await self.db.flush()
        await self.db.refresh(notification)
        logger.info(
            "notification_created",
            user_id=user.id,
            notification_id=notification.id,
            type=notification.type,
        )
        return notification

    async def _get_owned(self, notification_id: int, user: User) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        if notification is None or notification.user_id != user.id:
            raise NotFoundError("Notification")
        return notification

    async def mark_read(self, notification_id: int, user: User) -> None:
        notification = await self._get_owned(notification_id, user)
        notification.is_read = True
        await self.db.flush()

    async def mark_all_read(self, user: User) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount or 0

    async def delete_notification(self, notification_id: int, user: User) -> None:
        await self._get_owned(notification_id, user)
        await self.db.execute(delete(Notification).where(Notification.id == notification_id))
        logger.info("notification_deleted", user_id=user.id, notification_id=notification_id)
