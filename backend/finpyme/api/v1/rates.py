"""Exchange-rate API routes."""

import structlog
from fastapi import APIRouter, Depends, Query

from finpyme.api.deps import get_current_user
from finpyme.models.user import User
from finpyme.schemas.rates import RatesResponse
from finpyme.services.rate_provider import (
    RateCache,
    RateRefresher,
    RateSnapshot,
    get_rate_cache,
    get_rate_refresher,
)

logger = structlog.get_logger()

router = APIRouter()


def _to_response(snapshot: RateSnapshot, market: dict[str, float] | None = None) -> dict:
    return {
        **snapshot.as_dict(),
        "fetched_at": snapshot.fetched_at,
        "is_live": snapshot.is_live,
        "fallbacks": snapshot.fallbacks,
        "market": market,
    }


@router.get("", response_model=RatesResponse)
async def get_rates(
    include_market: bool = Query(False),
    cache: RateCache = Depends(get_rate_cache),
    refresher: RateRefresher = Depends(get_rate_refresher),
):
    """Current cached dollar quotes; EUR/BRL are fetched on request."""
    market = await refresher.provider.fetch_market_rates() if include_market else None
    return _to_response(cache.snapshot, market)


@router.post("/refresh", response_model=RatesResponse)
async def refresh_rates(
    user: User = Depends(get_current_user),
    refresher: RateRefresher = Depends(get_rate_refresher),
):
    snapshot = await refresher.refresh()
    logger.info("exchange_rates_refreshed_manually", user_id=user.id)
    return _to_response(snapshot)
