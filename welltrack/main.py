"""Main entry point for WellTrack."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from welltrack.api.routes import router as api_router
from welltrack.config import get_settings
from welltrack.logging_config import configure_logging
from welltrack.services.scheduler import ReportScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting WellTrack...")

    scheduler = None
    if settings.enable_scheduled_reports:
        scheduler = ReportScheduler(settings=settings)
        scheduler.start()

    try:
        yield
    finally:
        if scheduler:
            scheduler.stop()
        logger.info("WellTrack stopped")


app = FastAPI(
    title="WellTrack API",
    description="Personal health tracking with AI insights, health reports, and diet plans",
    version="1.0.0",
    lifespan=lifespan,
)
app.include_router(api_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


def run():
    """Entry point for running the API server."""
    uvicorn.run("welltrack.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
