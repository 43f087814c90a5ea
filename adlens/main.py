"""ADLENS — FastAPI Application Entry Point.

Ad campaign reconciliation and metrics service.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adlens.config import settings
from adlens.api.deps import get_pipeline
from adlens.core.errors import AdlensError
from adlens.database import init_db, test_connection
from adlens.scheduler.jobs import start_scheduler, stop_scheduler
from adlens.api.dashboard_routes import router as dashboard_router
from adlens.api.meta_routes import router as meta_router
from adlens.core.logging import get_logger

logger = get_logger("main")

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("ADLENS starting up...")
    if test_connection():
        init_db()
    else:
        logger.error("Database NOT connected — session state will not persist")
    if settings.store_url:
        try:
            await get_pipeline().reload()
        except AdlensError as e:
            # Imports reload on their own before touching the store
            logger.error(f"Initial reload failed: {e}")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("ADLENS shut down")


app = FastAPI(
    title="ADLENS",
    description="Reconcile spreadsheet and Meta ad performance data into one per-day, per-campaign dataset with weighted metrics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard_router)
app.include_router(meta_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "adlens",
        "version": "1.0.0",
        "meta_configured": bool(
            settings.meta_access_token and settings.meta_ad_account_id
        ),
        "store_configured": bool(settings.store_url),
    }
