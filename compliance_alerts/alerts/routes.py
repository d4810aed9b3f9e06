"""
Alert Routes

API endpoints for the alerts dashboard, notification list and admin
controls.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.config import settings
from compliance_alerts.audit.services import AuditService
from compliance_alerts.database import get_db
from .exceptions import AlertNotFound, InvalidStateTransition, EngineBusy
from .lifecycle import LifecycleManager
from .models import AlertPriority, AlertStatus
from .scheduler import alert_scheduler
from .schemas import (
    AlertHistoryResponse,
    AlertResponse,
    AlertsListResponse,
    AuditEntryResponse,
    AlertStatsResponse,
    CleanupRequest,
    CleanupResponse,
    GenerationSummaryResponse,
    SchedulerStatusResponse,
)
from .store import AlertStore

router = APIRouter(prefix="/alerts", tags=["Alerts"])


def get_alert_scheduler():
    """Dependency so tests can swap in their own orchestrator."""
    return alert_scheduler


async def _apply(db: AsyncSession, alert_id: str, target: AlertStatus) -> AlertResponse:
    lifecycle = LifecycleManager(db, source="api")
    try:
        alert = await lifecycle.transition(alert_id, target)
    except AlertNotFound:
        raise HTTPException(status_code=404, detail="Alert not found")
    except InvalidStateTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return AlertResponse.model_validate(alert)


@router.get("", response_model=AlertsListResponse)
async def list_alerts(
    status: Optional[AlertStatus] = Query(None),
    priority: Optional[AlertPriority] = Query(None),
    firm_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List alerts, most urgent first."""
    alerts = await AlertStore(db).list_by_filter(status=status, priority=priority, firm_id=firm_id)
    return AlertsListResponse(
        alerts=[AlertResponse.model_validate(a) for a in alerts],
        total=len(alerts),
    )


@router.get("/stats", response_model=AlertStatsResponse)
async def get_alert_stats(
    firm_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    stats = await AlertStore(db).stats(firm_id=firm_id)
    return AlertStatsResponse(
        pending=stats["pending"],
        by_type=stats["by_type"],
        by_status=stats["by_status"],
        recent=[AlertResponse.model_validate(a) for a in stats["recent"]],
    )


@router.get("/scheduler/status", response_model=SchedulerStatusResponse)
async def get_scheduler_status(orchestrator=Depends(get_alert_scheduler)):
    return orchestrator.get_status()


@router.post("/generate", response_model=GenerationSummaryResponse)
async def generate_alerts(orchestrator=Depends(get_alert_scheduler)):
    """
    Run alert generation now.

    Scanner or store failures are reported in the response body; only a
    run already in progress is rejected (409).
    """
    try:
        summary = await orchestrator.generate()
    except EngineBusy as e:
        raise HTTPException(status_code=409, detail=str(e))
    return summary.to_dict()


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_alerts(
    request: Optional[CleanupRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Purge completed and dismissed alerts older than the retention window."""
    retention_days = request.retention_days if request else None
    if retention_days is None:
        retention_days = settings.ALERT_RETENTION_DAYS
    if retention_days < 0:
        raise HTTPException(status_code=400, detail="retention_days must not be negative")
    deleted = await LifecycleManager(db, source="api").cleanup(retention_days)
    return CleanupResponse(deleted=deleted, retention_days=retention_days)


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(alert_id: str, db: AsyncSession = Depends(get_db)):
    alert = await AlertStore(db).get(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.model_validate(alert)


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(alert_id: str, db: AsyncSession = Depends(get_db)):
    return await _apply(db, alert_id, AlertStatus.ACKNOWLEDGED)


@router.post("/{alert_id}/dismiss", response_model=AlertResponse)
async def dismiss_alert(alert_id: str, db: AsyncSession = Depends(get_db)):
    return await _apply(db, alert_id, AlertStatus.DISMISSED)


@router.post("/{alert_id}/complete", response_model=AlertResponse)
async def complete_alert(alert_id: str, db: AsyncSession = Depends(get_db)):
    return await _apply(db, alert_id, AlertStatus.COMPLETED)


@router.get("/{alert_id}/history", response_model=AlertHistoryResponse)
async def get_alert_history(alert_id: str, db: AsyncSession = Depends(get_db)):
    """Status changes recorded for an alert, newest first."""
    entries = await AuditService(db).get_entity_history("alert", alert_id)
    return AlertHistoryResponse(
        alert_id=alert_id,
        entries=[AuditEntryResponse.model_validate(e) for e in entries],
    )
