"""
PharmaStock API — FastAPI Application Entry Point
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.deps import get_engine
from core.config import get_settings
from workers.ticker import run_digest_ticker

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("PharmaStock API starting up", version=settings.app_version)
    stop = asyncio.Event()
    ticker = None
    if settings.digest_tick_seconds > 0:
        ticker = asyncio.create_task(
            run_digest_ticker(get_engine().dispatcher, settings.digest_tick_seconds, stop)
        )
    yield
    stop.set()
    if ticker is not None:
        await ticker
    logger.info("PharmaStock API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Stock threshold alerting and replenishment planning",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from alerts.websocket import router as ws_router
from api.v1.routers import (
    alerts,
    notifications,
    products,
    replenishment,
    templates,
    thresholds,
)

app.include_router(products.router)
app.include_router(thresholds.router)
app.include_router(alerts.router)
app.include_router(replenishment.router)
app.include_router(templates.router)
app.include_router(notifications.router)
app.include_router(ws_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
