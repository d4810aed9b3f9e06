"""Request and response schemas for the alerts API."""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class AlertResponse(BaseModel):
    """Response schema for a single alert."""
    id: str
    alert_type: str
    reference_type: str
    reference_id: int
    firm_id: Optional[int] = None
    title: str
    message: Optional[str] = None
    alert_date: date
    due_date: Optional[date] = None
    priority: str
    status: str
    notification_sent: bool = False
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AlertsListResponse(BaseModel):
    alerts: List[AlertResponse]
    total: int


class PendingCounts(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


class AlertStatsResponse(BaseModel):
    """Dashboard summary counts."""
    pending: PendingCounts
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    recent: List[AlertResponse]


class EntityRunStatsResponse(BaseModel):
    scanned: int
    created: int
    updated: int
    skipped: int
    failed: int


class GenerationSummaryResponse(BaseModel):
    """Result of a generation run; partial failures are listed under errors."""
    run_id: str
    trigger: str
    status: str
    started_at: str
    completed_at: Optional[str] = None
    created: int
    updated: int
    skipped: int
    failed: int
    by_entity_type: Dict[str, EntityRunStatsResponse]
    errors: Dict[str, str]


class CleanupRequest(BaseModel):
    retention_days: Optional[int] = None


class CleanupResponse(BaseModel):
    deleted: int
    retention_days: int


class SchedulerStatusResponse(BaseModel):
    state: str
    current_run_id: Optional[str] = None
    last_run: Optional[GenerationSummaryResponse] = None
    last_cleanup_at: Optional[str] = None
    last_cleanup_deleted: Optional[int] = None
    thresholds: Dict[str, List[dict]]


class AuditEntryResponse(BaseModel):
    id: str
    action: str
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    source: str
    created_at: datetime

    class Config:
        from_attributes = True


class AlertHistoryResponse(BaseModel):
    alert_id: str
    entries: List[AuditEntryResponse]
