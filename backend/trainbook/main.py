# backend/trainbook/main.py
"""
FastAPI application for the trainer scheduling service.

Mounts the v1 routers under /api/v1 and exposes Prometheus metrics at
/metrics.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Dict

from fastapi import APIRouter, FastAPI, Response

from .core.config import settings
from .database import Base, engine
from . import models  # noqa: F401  registers every table on Base.metadata
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import availability as availability_v1, bookings as bookings_v1, events as events_v1

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"Trainbook API starting up (environment={settings.environment})")
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
    yield
    logger.info("Trainbook API shutting down")


app = FastAPI(
    title="Trainbook API",
    description="Trainer availability, booking lifecycle and conflict reconciliation",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(availability_v1.router, prefix="/trainers")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(events_v1.router, prefix="/events")
app.include_router(api_v1)


@app.get("/health", include_in_schema=False)
def health_check() -> Dict[str, str]:
    return {"status": "ok", "environment": settings.environment}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
