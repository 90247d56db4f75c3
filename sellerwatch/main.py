"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from sellerwatch.config import settings
from sellerwatch.alerts import routes as alerts_routes
from sellerwatch.detection import routes as detection_routes
from sellerwatch.detection.scheduler import alerts_scheduler, setup_apscheduler
from sellerwatch.notifications import AlertsEmailTemplate, get_alert_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Email layout is read once per process
    alerts_scheduler.notifier = get_alert_notifier(template=AlertsEmailTemplate.load())

    scheduler = None
    if settings.ALERTS_SCHEDULER_ENABLED:
        scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)
        setup_apscheduler(scheduler)
        scheduler.start()
        logger.info("Alerts scheduler started")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title="SellerWatch API",
    description="Alert detection and notifications for Amazon seller accounts",
    version="0.4.0",
    lifespan=lifespan,
)

app.include_router(alerts_routes.router, prefix=settings.API_V1_PREFIX, tags=["Alerts"])
app.include_router(detection_routes.router, prefix=settings.API_V1_PREFIX, tags=["Alerts Run"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "SellerWatch API",
        "version": "0.4.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "alerts_run": alerts_scheduler.get_status()["state"]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sellerwatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
