"""AI insight schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class InsightCreate(BaseModel):
    type: Literal["pattern", "opportunity", "recommendation", "alert"]
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    priority: Literal["low", "medium", "high"] = "medium"
    metadata: dict | None = None


class InsightResponse(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    description: str
    priority: str
    is_read: bool
    metadata: dict | None = Field(None, validation_alias="metadata_")
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class GeneratedInsight(BaseModel):
    """A rule output, before (or without) persistence."""

    id: str
    type: str
    title: str
    description: str
    priority: str
    confidence: float
    impact: str
    actionable: bool
    metadata: dict = {}


class InsightGenerationResponse(BaseModel):
    insights: list[GeneratedInsight]
    saved: list[InsightResponse]
