"""Notification API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finpyme.api.deps import get_db, get_owner
from finpyme.models.user import User
from finpyme.schemas.notification import (
    MessageResponse,
    NotificationCreate,
    NotificationResponse,
    UnreadCount,
)
from finpyme.services.notification_service import NotificationService

router = APIRouter()


@router.get("/{user_id}", response_model=list[NotificationResponse])
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).list_notifications(owner, limit=limit)


@router.get("/{user_id}/count", response_model=UnreadCount)
async def unread_count(owner: User = Depends(get_owner), db: AsyncSession = Depends(get_db)):
    return {"count": await NotificationService(db).unread_count(owner)}


@router.post("/{user_id}", response_model=NotificationResponse, status_code=201)
async def create_notification(
    data: NotificationCreate,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).create_notification(data, owner)


@router.patch("/{user_id}/read-all", response_model=MessageResponse)
async def mark_all_read(owner: User = Depends(get_owner), db: AsyncSession = Depends(get_db)):
    await NotificationService(db).mark_all_read(owner)
    return {"message": "Todas las notificaciones marcadas como leídas"}


@router.patch("/{user_id}/{notification_id}/read", response_model=MessageResponse)
async def mark_read(
    notification_id: int,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).mark_read(notification_id, owner)
    return {"message": "Notificación marcada como leída"}


@router.delete("/{user_id}/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int,
    owner: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).delete_notification(notification_id, owner)
    return {"message": "Notificación eliminada"}
