"""Exchange-rate provider for the Argentine peso.

Fetches the three parallel USD quotes (oficial, blue, MEP) from DolarAPI and
keeps the latest snapshot in a process-wide cache. Every quote is fetched
independently: when one source fails, only that key reverts to its fixed
fallback value, and `fetch_rates` itself never raises.
"""

import asyncio
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx
import structlog

from finpyme.config import settings
from finpyme.core.scheduler import CancelHandle, Scheduler
from finpyme.utils.numbers import to_float

logger = structlog.get_logger()

DOLLAR_TYPES = ("oficial", "blue", "mep")

# DolarAPI path segment per dollar type (MEP is published as "bolsa")
_ENDPOINT_SLUGS = {"oficial": "oficial", "blue": "blue", "mep": "bolsa"}

MARKET_CURRENCIES = ("EUR", "BRL")


# ── Fetch results ─────────────────────────────────


@dataclass(frozen=True)
class RateOk:
    rate: float


@dataclass(frozen=True)
class RateFallback:
    reason: str
    rate: float


RateFetchResult = RateOk | RateFallback


@dataclass(frozen=True)
class RateSnapshot:
    """ARS-per-USD quotes, replaced as a whole on every refresh."""

    oficial: float
    blue: float
    mep: float
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # dollar type -> fallback reason, for the keys that did not come from a live source
    fallbacks: dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        for dollar_type in DOLLAR_TYPES:
            value = getattr(self, dollar_type)
            if math.isnan(value) or value < 0:
                raise ValueError(f"Invalid {dollar_type} rate: {value}")

    @classmethod
    def from_fallback(cls, rates: dict[str, float], reason: str = "not fetched yet") -> "RateSnapshot":
        return cls(
            oficial=rates["oficial"],
            blue=rates["blue"],
            mep=rates["mep"],
            fallbacks={t: reason for t in DOLLAR_TYPES},
        )

    @classmethod
    def from_results(cls, results: dict[str, RateFetchResult]) -> "RateSnapshot":
        return cls(
            oficial=results["oficial"].rate,
            blue=results["blue"].rate,
            mep=results["mep"].rate,
            fallbacks={
                t: r.reason for t, r in results.items() if isinstance(r, RateFallback)
            },
        )

    def rate_for(self, dollar_type: str) -> float:
        if dollar_type not in DOLLAR_TYPES:
            raise ValueError(f"Unknown dollar type: {dollar_type}")
        return getattr(self, dollar_type)

    @property
    def is_live(self) -> bool:
        return not self.fallbacks

    def as_dict(self) -> dict[str, float]:
        return {t: getattr(self, t) for t in DOLLAR_TYPES}


def _extract_quote(data) -> float | None:
    """Pick `venta`, else `compra`; only finite positive quotes count."""
    if not isinstance(data, dict):
        return None
    for key in ("venta", "compra"):
        value = to_float(data.get(key))
        if math.isfinite(value) and value > 0:
            return value
    return None


# ── Provider ──────────────────────────────────────


class RateProvider:
    """Reads quotes from DolarAPI and the generic multi-currency endpoint.

    An `httpx.AsyncClient` can be injected (tests pass one built on
    `httpx.MockTransport`); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        market_url: str | None = None,
        fallback_rates: dict[str, float] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self.base_url = (base_url or settings.dolar_api_base_url).rstrip("/")
        self.market_url = market_url or settings.market_rates_url
        self.fallback_rates = fallback_rates or settings.fallback_dollar_rates
        self.timeout = timeout if timeout is not None else settings.rates_request_timeout

    async def fetch_rates(self) -> RateSnapshot:
        """Fetch all dollar quotes concurrently; failed keys use their fallback."""
        if self._client is not None:
            results = await self._fetch_all(self._client)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                results = await self._fetch_all(client)

        snapshot = RateSnapshot.from_results(results)
        logger.info(
            "exchange_rates_fetched",
            rates=snapshot.as_dict(),
            fallbacks=sorted(snapshot.fallbacks),
        )
        return snapshot

    async def _fetch_all(self, client: httpx.AsyncClient) -> dict[str, RateFetchResult]:
        results = await asyncio.gather(
            *(self.fetch_quote(client, dollar_type) for dollar_type in DOLLAR_TYPES)
        )
        return dict(zip(DOLLAR_TYPES, results))

    async def fetch_quote(self, client: httpx.AsyncClient, dollar_type: str) -> RateFetchResult:
        """Fetch one quote. Every failure mode maps to `RateFallback`."""
        fallback = self.fallback_rates[dollar_type]
        url = f"{self.base_url}/{_ENDPOINT_SLUGS[dollar_type]}"
        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            reason = f"HTTP {e.response.status_code}"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            reason = f"{type(e).__name__}: {e}"
        except ValueError:
            reason = "invalid JSON"
        else:
            rate = _extract_quote(data)
            if rate is not None:
                return RateOk(rate)
            reason = "no venta/compra quote"

        logger.warning("exchange_rate_fallback", dollar_type=dollar_type, url=url, reason=reason)
        return RateFallback(reason=reason, rate=fallback)

    async def fetch_market_rates(self) -> dict[str, float]:
        """ARS per unit of EUR and BRL from the `rates` map of an ARS-based endpoint."""
        fallbacks = {
            "EUR": settings.fallback_rate_eur,
            "BRL": settings.fallback_rate_brl,
        }
        try:
            if self._client is not None:
                response = await self._client.get(self.market_url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.market_url)
            response.raise_for_status()
            rates = response.json().get("rates") or {}
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, AttributeError) as e:
            logger.warning("market_rates_fallback", url=self.market_url, error=str(e))
            return dict(fallbacks)
        if not isinstance(rates, dict):
            logger.warning("market_rates_fallback", url=self.market_url, error="rates is not a mapping")
            return dict(fallbacks)

        quotes = {}
        for code in MARKET_CURRENCIES:
            # The endpoint quotes units of `code` per 1 ARS; invert it
            per_ars = to_float(rates.get(code))
            if math.isfinite(per_ars) and per_ars > 0:
                quotes[code] = round(1 / per_ars, 2)
            else:
                quotes[code] = fallbacks[code]
        return quotes


# ── Process-wide snapshot ─────────────────────────


class RateCache:
    """Holds the current snapshot; `swap` replaces it in one assignment."""

    def __init__(self, initial: RateSnapshot) -> None:
        self._snapshot = initial

    @property
    def snapshot(self) -> RateSnapshot:
        return self._snapshot

    def swap(self, snapshot: RateSnapshot) -> RateSnapshot:
        previous, self._snapshot = self._snapshot, snapshot
        return previous


class RateRefresher:
    """Refreshes the cache on a fixed interval and on demand."""

    def __init__(
        self,
        provider: RateProvider,
        cache: RateCache,
        interval_seconds: float | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.rates_refresh_interval_seconds
        )
        self._handle: CancelHandle | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    async def refresh(self) -> RateSnapshot:
        snapshot = await self.provider.fetch_rates()
        self.cache.swap(snapshot)
        return snapshot

    async def start(self, scheduler: Scheduler) -> None:
        """Refresh now, then every `interval_seconds`. Restarting replaces the job."""
        self.stop()
        await self.refresh()
        self._handle = scheduler.schedule(self.interval_seconds, self.refresh)
        logger.info("exchange_rate_refresh_started", interval_seconds=self.interval_seconds)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


rate_cache = RateCache(RateSnapshot.from_fallback(settings.fallback_dollar_rates))
rate_refresher = RateRefresher(RateProvider(), rate_cache)


def get_rate_cache() -> RateCache:
    """FastAPI dependency for the process-wide rate cache."""
    return rate_cache


def get_rate_refresher() -> RateRefresher:
    return rate_refresher
