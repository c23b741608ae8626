"""Exchange-rate provider, cache and refresher tests."""

import asyncio
import math

import httpx
import pytest

from conftest import DEFAULT_QUOTES, dolar_api_handler, mock_provider
from finpyme.core.scheduler import AsyncioScheduler
from finpyme.services.rate_provider import (
    RateCache,
    RateFallback,
    RateOk,
    RateProvider,
    RateRefresher,
    RateSnapshot,
)


async def test_fetch_rates_all_live():
    snapshot = await mock_provider().fetch_rates()

    assert snapshot.as_dict() == {"oficial": 1250.0, "blue": 1310.0, "mep": 1320.0}
    assert snapshot.is_live
    assert snapshot.fallbacks == {}


async def test_mep_is_requested_as_bolsa():
    seen = []
    await mock_provider(seen=seen).fetch_rates()
    assert sorted(seen) == ["blue", "bolsa", "oficial"]


async def test_compra_used_when_venta_missing():
    quotes = {**DEFAULT_QUOTES, "blue": {"compra": 1288.5, "venta": None}}
    snapshot = await mock_provider(quotes).fetch_rates()
    assert snapshot.blue == 1288.5
    assert snapshot.is_live


async def test_partial_failure_only_affects_failed_keys():
    quotes = {
        "oficial": {"venta": 1250.0},
        "blue": 500,
        "bolsa": "connect-error",
    }
    snapshot = await mock_provider(quotes).fetch_rates()

    assert snapshot.oficial == 1250.0
    assert snapshot.blue == 1300.0
    assert snapshot.mep == 1304.0
    assert set(snapshot.fallbacks) == {"blue", "mep"}
    assert snapshot.fallbacks["blue"] == "HTTP 500"
    assert "ConnectError" in snapshot.fallbacks["mep"]


async def test_every_source_down_yields_full_fallback_snapshot():
    quotes = {"oficial": "connect-error", "blue": 503, "bolsa": b"<html>oops</html>"}
    snapshot = await mock_provider(quotes).fetch_rates()

    assert snapshot.as_dict() == {"oficial": 1270.0, "blue": 1300.0, "mep": 1304.0}
    assert not snapshot.is_live
    assert snapshot.fallbacks["mep"] == "invalid JSON"


@pytest.mark.parametrize("body", [{"venta": -5}, {"venta": "abc", "compra": 0}, {}, [1, 2]])
async def test_unusable_quote_falls_back(body):
    provider = mock_provider()
    async with httpx.AsyncClient(transport=httpx.MockTransport(
        dolar_api_handler({"oficial": body})
    )) as client:
        result = await provider.fetch_quote(client, "oficial")

    assert result == RateFallback(reason="no venta/compra quote", rate=1270.0)


async def test_fetch_quote_returns_tagged_ok():
    provider = mock_provider()
    async with httpx.AsyncClient(transport=httpx.MockTransport(
        dolar_api_handler(DEFAULT_QUOTES)
    )) as client:
        result = await provider.fetch_quote(client, "blue")
    assert result == RateOk(1310.0)


async def test_market_rates_are_inverted():
    def handler(request):
        return httpx.Response(200, json={"base": "ARS", "rates": {"EUR": 0.0007, "BRL": 0.004}})

    provider = RateProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    assert await provider.fetch_market_rates() == {"EUR": 1428.57, "BRL": 250.0}


async def test_market_rates_fallback_per_key_and_on_error():
    def partial(request):
        return httpx.Response(200, json={"rates": {"EUR": 0.0007}})

    def broken(request):
        return httpx.Response(502)

    provider = RateProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(partial)))
    assert await provider.fetch_market_rates() == {"EUR": 1428.57, "BRL": 245.0}

    provider = RateProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(broken)))
    assert await provider.fetch_market_rates() == {"EUR": 1420.0, "BRL": 245.0}


@pytest.mark.parametrize("rates", [["EUR", "BRL"], "EUR=0.0007", 42])
async def test_market_rates_malformed_map_falls_back(rates):
    def handler(request):
        return httpx.Response(200, json={"base": "ARS", "rates": rates})

    provider = RateProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    assert await provider.fetch_market_rates() == {"EUR": 1420.0, "BRL": 245.0}


async def test_invalid_url_falls_back_instead_of_raising():
    def handler(request):
        raise httpx.InvalidURL("Invalid port: 'abc'")

    provider = RateProvider(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    snapshot = await provider.fetch_rates()

    assert snapshot.as_dict() == {"oficial": 1270.0, "blue": 1300.0, "mep": 1304.0}
    assert snapshot.fallbacks["oficial"].startswith("InvalidURL")
    assert await provider.fetch_market_rates() == {"EUR": 1420.0, "BRL": 245.0}


def test_snapshot_rejects_negative_and_nan():
    with pytest.raises(ValueError):
        RateSnapshot(oficial=-1.0, blue=1.0, mep=1.0)
    with pytest.raises(ValueError):
        RateSnapshot(oficial=1.0, blue=math.nan, mep=1.0)


def test_snapshot_rate_for_unknown_type():
    snapshot = RateSnapshot(oficial=1.0, blue=2.0, mep=3.0)
    assert snapshot.rate_for("mep") == 3.0
    with pytest.raises(ValueError):
        snapshot.rate_for("cripto")


def test_cache_swap_replaces_whole_snapshot():
    first = RateSnapshot(oficial=1.0, blue=2.0, mep=3.0)
    second = RateSnapshot(oficial=4.0, blue=5.0, mep=6.0)
    cache = RateCache(first)

    assert cache.swap(second) is first
    assert cache.snapshot is second


# ── Refresher scheduling ──────────────────────────


class CountingProvider:
    def __init__(self):
        self.calls = 0

    async def fetch_rates(self):
        self.calls += 1
        return RateSnapshot(oficial=1000.0 + self.calls, blue=1.0, mep=1.0)


async def test_refresher_runs_immediately_then_every_interval(manual_scheduler):
    provider = CountingProvider()
    cache = RateCache(RateSnapshot(oficial=1.0, blue=1.0, mep=1.0))
    refresher = RateRefresher(provider, cache, interval_seconds=300)

    await refresher.start(manual_scheduler)
    assert provider.calls == 1
    assert cache.snapshot.oficial == 1001.0

    await manual_scheduler.advance(299)
    assert provider.calls == 1
    await manual_scheduler.advance(1)
    assert provider.calls == 2
    await manual_scheduler.advance(600)
    assert provider.calls == 4
    assert cache.snapshot.oficial == 1004.0


async def test_refresher_stop_cancels_job(manual_scheduler):
    provider = CountingProvider()
    refresher = RateRefresher(provider, RateCache(RateSnapshot(1.0, 1.0, 1.0)), interval_seconds=300)

    await refresher.start(manual_scheduler)
    assert refresher.running
    refresher.stop()
    assert not refresher.running

    await manual_scheduler.advance(3000)
    assert provider.calls == 1


async def test_refresher_restart_keeps_single_job(manual_scheduler):
    provider = CountingProvider()
    refresher = RateRefresher(provider, RateCache(RateSnapshot(1.0, 1.0, 1.0)), interval_seconds=300)

    await refresher.start(manual_scheduler)
    await refresher.start(manual_scheduler)
    assert len(manual_scheduler.jobs) == 1

    await manual_scheduler.advance(300)
    assert provider.calls == 3


async def test_manual_refresh_swaps_snapshot():
    cache = RateCache(RateSnapshot(1.0, 1.0, 1.0))
    refresher = RateRefresher(mock_provider(), cache)

    snapshot = await refresher.refresh()
    assert cache.snapshot is snapshot
    assert snapshot.blue == 1310.0


async def test_asyncio_scheduler_survives_failing_job():
    scheduler = AsyncioScheduler()
    runs = []

    async def job():
        runs.append(len(runs))
        if len(runs) == 1:
            raise RuntimeError("first run fails")

    handle = scheduler.schedule(0.01, job)
    await asyncio.sleep(0.1)
    assert len(runs) >= 2

    handle.cancel()
    handle.cancel()
    await asyncio.sleep(0.02)
    count = len(runs)
    await asyncio.sleep(0.05)
    assert len(runs) == count
    await scheduler.shutdown()
