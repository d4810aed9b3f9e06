"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from compliance_alerts.config import settings
from compliance_alerts.database import init_models
from compliance_alerts.alerts import routes as alert_routes
from compliance_alerts.alerts.scheduler import alert_scheduler, setup_apscheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Invalid threshold overrides raise ValueError before anything starts
    registry = alert_scheduler.load_registry()
    logger.info(f"Alert thresholds loaded for {len(registry.entity_types())} entity types")

    await init_models()

    scheduler = None
    if settings.ALERT_SCHEDULER_ENABLED:
        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler)
        scheduler.start()
        logger.info("Alert scheduler started")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title="Compliance Alerts API",
    description="Deadline reminders for licenses, enlistments, guarantees, taxes, tenders and loans",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(alert_routes.router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "compliance_alerts.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
