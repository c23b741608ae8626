"""Inflation data schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class InflationCreate(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=2200)
    rate: Decimal = Field(max_digits=5, decimal_places=2)
    source: str = "INDEC"


class InflationResponse(BaseModel):
    id: int
    month: int
    year: int
    rate: Decimal
    source: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
