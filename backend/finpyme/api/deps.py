"""Shared API dependencies."""

from typing import Literal

from fastapi import Depends, Query

from finpyme.core.database import get_db
from finpyme.core.security import get_current_user, get_owner
from finpyme.models.user import User
from finpyme.services.currency_service import CurrencyConfig, CurrencyService
from finpyme.services.rate_provider import RateCache, get_rate_cache

__all__ = ["get_db", "get_current_user", "get_owner", "get_currency_service"]


async def get_currency_service(
    currency: Literal["ARS", "USD"] | None = Query(None),
    dollar_type: Literal["oficial", "blue", "mep"] | None = Query(None),
    owner: User = Depends(get_owner),
    cache: RateCache = Depends(get_rate_cache),
) -> CurrencyService:
    """Currency view for this request: query params, else the owner's stored preferences."""
    config = CurrencyConfig.resolve(currency, dollar_type, user=owner)
    return CurrencyService(config, cache.snapshot)
