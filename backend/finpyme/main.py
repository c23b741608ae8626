"""FinPyME Pro API: application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from finpyme.config import settings
from finpyme.core.database import async_session_factory, engine
from finpyme.core.exceptions import register_exception_handlers
from finpyme.core.middleware import RequestLoggingMiddleware
from finpyme.core.scheduler import AsyncioScheduler
from finpyme.services.rate_provider import rate_refresher

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the exchange-rate refresh job; tear it down with the DB pool."""
    logger.info("Starting FinPyME Pro API", env=settings.app_env)
    scheduler = AsyncioScheduler()
    if settings.rates_scheduler_enabled:
        await rate_refresher.start(scheduler)
    yield
    logger.info("Shutting down FinPyME Pro API")
    rate_refresher.stop()
    await scheduler.shutdown()
    await engine.dispose()


app = FastAPI(
    title="FinPyME Pro API",
    description="Panel financiero para PyMEs argentinas: flujo de caja, proyecciones y alertas",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# ── Middleware ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)


# ── Health Check ──────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "version": VERSION}


@app.get("/ready", tags=["system"])
async def readiness_check():
    """Readiness probe: database connectivity."""
    checks = {"database": "unknown", "api": "ok"}
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = "ok"
    except Exception as e:
        logger.error("readiness_check_failed", error=str(e))
        checks["database"] = f"error: {e}"
        return {"status": "degraded", "checks": checks}

    return {"status": "ready", "checks": checks}


# ── API Routes ────────────────────────────────────
from finpyme.api.v1 import (  # noqa: E402
    auth,
    categories,
    dashboard,
    inflation,
    insights,
    notifications,
    projections,
    rates,
    transactions,
)

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(transactions.router, prefix="/api/transactions", tags=["transactions"])
app.include_router(categories.router, prefix="/api/transaction-categories", tags=["categories"])
app.include_router(projections.router, prefix="/api/cash-flow-projections", tags=["projections"])
app.include_router(insights.router, prefix="/api/ai-insights", tags=["insights"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])
app.include_router(inflation.router, prefix="/api/inflation", tags=["inflation"])
app.include_router(rates.router, prefix="/api/rates", tags=["rates"])
