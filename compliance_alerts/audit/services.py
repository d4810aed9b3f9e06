"""
Audit Service for logging alert changes.

Rows are added to the caller's session and committed together with the
change they describe.
"""
from typing import Optional, Dict, Any, List, Literal

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.audit.models import AlertAuditLog


EntityType = Literal["alert", "alert_engine"]
SourceType = Literal["api", "system"]


class AuditService:
    """
    Service for logging audit events.

    Usage:
        audit = AuditService(db, source="api")
        await audit.log_transition(alert.id, "acknowledge", "pending", "acknowledged")
        await db.commit()
    """

    def __init__(self, db: AsyncSession, source: SourceType = "api"):
        self.db = db
        self.source = source

    async def log(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: str,
        old_value: Optional[Any] = None,
        new_value: Optional[Any] = None,
        metadata: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> AlertAuditLog:
        log = AlertAuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_value=old_value,
            new_value=new_value,
            source=self.source,
            extra_data=metadata,
            notes=notes,
        )
        self.db.add(log)
        # Don't commit here - let caller manage transaction
        return log

    async def log_transition(
        self, alert_id: str, action: str, old_status: str, new_status: str
    ) -> AlertAuditLog:
        return await self.log(
            entity_type="alert",
            entity_id=alert_id,
            action=action,
            old_value={"status": old_status},
            new_value={"status": new_status},
        )

    async def log_cleanup(self, deleted: int, retention_days: int) -> AlertAuditLog:
        return await self.log(
            entity_type="alert_engine",
            entity_id="cleanup",
            action="cleanup",
            metadata={"deleted": deleted, "retention_days": retention_days},
        )

    async def log_run(self, run_id: str, summary: Dict[str, Any]) -> AlertAuditLog:
        return await self.log(
            entity_type="alert_engine",
            entity_id=run_id,
            action="generate",
            metadata=summary,
        )

    async def get_entity_history(self, entity_type: EntityType, entity_id: str, limit: int = 50) -> List[AlertAuditLog]:
        result = await self.db.execute(
            select(AlertAuditLog)
            .where(AlertAuditLog.entity_type == entity_type)
            .where(AlertAuditLog.entity_id == entity_id)
            .order_by(desc(AlertAuditLog.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())
