"""Transaction schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class TransactionCreate(BaseModel):
    category_id: int
    description: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=15, decimal_places=2)
    currency: Literal["ARS", "USD"] = "ARS"
    type: Literal["income", "expense"]
    date: datetime


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    category_id: int
    description: str
    amount: Decimal
    currency: str
    type: str
    date: datetime
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
