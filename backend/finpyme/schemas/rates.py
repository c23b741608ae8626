"""Exchange-rate schemas."""

from datetime import datetime

from pydantic import BaseModel


class RatesResponse(BaseModel):
    oficial: float
    blue: float
    mep: float
    fetched_at: datetime
    is_live: bool
    fallbacks: dict[str, str]
    market: dict[str, float] | None = None
