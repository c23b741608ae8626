"""Transaction category schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal["income", "expense"]
    is_default: bool = False
    color: str = Field("#6B7280", pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryResponse(BaseModel):
    id: int
    name: str
    type: str
    is_default: bool
    color: str

    model_config = {"from_attributes": True}
