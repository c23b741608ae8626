"""Shared test fixtures."""

import os

# Must be set before finpyme is imported: settings and the engine read them at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATES_SCHEDULER_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"

from datetime import datetime, timezone  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from finpyme.core import security  # noqa: E402
from finpyme.core.database import engine  # noqa: E402
from finpyme.core.scheduler import CancelHandle, Scheduler  # noqa: E402
from finpyme.main import app  # noqa: E402
from finpyme.models import Base  # noqa: E402
from finpyme.services.rate_provider import (  # noqa: E402
    RateCache,
    RateProvider,
    RateRefresher,
    RateSnapshot,
    get_rate_cache,
    get_rate_refresher,
)

DEFAULT_QUOTES = {
    "oficial": {"compra": 1230.0, "venta": 1250.0},
    "blue": {"compra": 1290.0, "venta": 1310.0},
    "bolsa": {"compra": 1295.0, "venta": 1320.0},
}

TEST_SNAPSHOT = RateSnapshot(oficial=1000.0, blue=1200.0, mep=1100.0)


# ── Fakes ─────────────────────────────────────────


class ManualScheduler(Scheduler):
    """Virtual-time scheduler: jobs only run when the test calls `advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.jobs: list[dict] = []

    def schedule(self, interval_seconds, fn) -> CancelHandle:
        job = {"next": self.now + interval_seconds, "interval": interval_seconds, "fn": fn}
        self.jobs.append(job)

        def cancel() -> None:
            if job in self.jobs:
                self.jobs.remove(job)

        return CancelHandle(cancel)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [job for job in self.jobs if job["next"] <= target]
            if not due:
                break
            job = min(due, key=lambda j: j["next"])
            self.now = job["next"]
            job["next"] += job["interval"]
            await job["fn"]()
        self.now = target

    async def shutdown(self) -> None:
        self.jobs.clear()


def dolar_api_handler(responses: dict, seen: list | None = None):
    """MockTransport handler keyed by the last path segment.

    A dict value is served as JSON, an int as a bare status code, and the
    string "connect-error" raises a transport error.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        slug = request.url.path.rsplit("/", 1)[-1]
        if seen is not None:
            seen.append(slug)
        outcome = responses.get(slug, 404)
        if outcome == "connect-error":
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        if isinstance(outcome, bytes):
            return httpx.Response(200, content=outcome)
        return httpx.Response(200, json=outcome)

    return handler


def mock_provider(responses: dict | None = None, seen: list | None = None) -> RateProvider:
    transport = httpx.MockTransport(dolar_api_handler(responses or DEFAULT_QUOTES, seen))
    return RateProvider(
        client=httpx.AsyncClient(transport=transport),
        base_url="https://dolar.test/v1/dolares",
        market_url="https://market.test/v4/latest/ARS",
    )


# ── Fixtures ──────────────────────────────────────


@pytest.fixture(autouse=True)
async def database():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(security, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def rate_cache():
    return RateCache(TEST_SNAPSHOT)


@pytest.fixture
def rate_refresher(rate_cache):
    return RateRefresher(mock_provider(), rate_cache, interval_seconds=300)


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
async def client(rate_cache, rate_refresher):
    """Async test client for the FastAPI app, with rate sources stubbed out."""
    app.dependency_overrides[get_rate_cache] = lambda: rate_cache
    app.dependency_overrides[get_rate_refresher] = lambda: rate_refresher
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def register(client, username: str = "acme", **overrides) -> tuple[int, dict]:
    """Register a user; returns (user_id, auth headers)."""
    payload = {
        "username": username,
        "email": f"{username}@pyme.com.ar",
        "password": "secreto123",
        "company_name": f"{username.title()} SRL",
        **overrides,
    }
    response = await client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
async def user(client):
    return await register(client)


@pytest.fixture
async def categories(client) -> dict[str, int]:
    ids = {}
    for name, kind in (("Ventas", "income"), ("Alquiler", "expense"), ("Sueldos", "expense")):
        response = await client.post(
            "/api/transaction-categories",
            json={"name": name, "type": kind},
        )
        ids[name] = response.json()["id"]
    return ids


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
