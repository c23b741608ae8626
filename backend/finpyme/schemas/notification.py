"""Notification schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

NotificationType = Literal[
    "expense_alert",
    "business_tip",
    "cash_flow_warning",
    "payment_reminder",
    "goal_achievement",
]


class NotificationCreate(BaseModel):
    type: NotificationType
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    priority: Literal["low", "medium", "high", "critical"] = "medium"
    action_url: str | None = None
    action_text: str | None = None
    metadata: dict | None = None
    expires_at: datetime | None = None


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    priority: str
    is_read: bool
    action_url: str | None = None
    action_text: str | None = None
    metadata: dict | None = Field(None, validation_alias="metadata_")
    expires_at: datetime | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int


class MessageResponse(BaseModel):
    message: str
