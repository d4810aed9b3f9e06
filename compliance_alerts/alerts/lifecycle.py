"""
Alert Lifecycle

State machine for user actions on alerts, plus the retention cleanup that
purges old terminal alerts.

    pending -> acknowledged -> completed
    pending -> completed
    pending -> dismissed
    acknowledged -> dismissed

Completing straight from pending is allowed: acknowledging is advisory.
Nothing leaves completed or dismissed.
"""

from typing import Dict, FrozenSet, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.audit.services import AuditService, SourceType
from compliance_alerts.config import settings
from .exceptions import AlertNotFound, InvalidStateTransition
from .models import Alert, AlertStatus, TERMINAL_STATUSES
from .store import AlertStore

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.PENDING: frozenset({
        AlertStatus.ACKNOWLEDGED,
        AlertStatus.COMPLETED,
        AlertStatus.DISMISSED,
    }),
    AlertStatus.ACKNOWLEDGED: frozenset({
        AlertStatus.COMPLETED,
        AlertStatus.DISMISSED,
    }),
    AlertStatus.COMPLETED: frozenset(),
    AlertStatus.DISMISSED: frozenset(),
}

# Action name recorded in the audit log for each target status
_ACTION_NAMES = {
    AlertStatus.ACKNOWLEDGED: "acknowledge",
    AlertStatus.COMPLETED: "complete",
    AlertStatus.DISMISSED: "dismiss",
    AlertStatus.PENDING: "reopen",
}


def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
    return AlertStatus(target) in ALLOWED_TRANSITIONS.get(AlertStatus(current), frozenset())


def _sources_for(target: AlertStatus) -> List[AlertStatus]:
    return [source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets]


class LifecycleManager:
    """Applies user transitions to alerts and runs retention cleanup."""

    def __init__(self, db: AsyncSession, source: SourceType = "api"):
        self.db = db
        self.store = AlertStore(db)
        self.audit = AuditService(db, source=source)

    async def transition(self, alert_id: str, target: AlertStatus) -> Alert:
        """
        Move an alert to `target`.

        Raises:
            AlertNotFound: no alert with this id
            InvalidStateTransition: the move is not in ALLOWED_TRANSITIONS;
                the alert is left unchanged
        """
        target = AlertStatus(target)
        alert = await self.store.get_or_raise(alert_id)
        current = AlertStatus(alert.status)
        action = _ACTION_NAMES[target]

        if not can_transition(current, target):
            raise InvalidStateTransition(alert_id, current.value, action)

        # Added before set_status commits, so both land together
        await self.audit.log_transition(alert_id, action, current.value, target.value)
        updated = await self.store.set_status(alert_id, target, expected=_sources_for(target))
        if updated is None:
            # Changed by another session since it was read
            latest = await self.store.get(alert_id, refresh=True)
            if latest is None:
                raise AlertNotFound(alert_id)
            raise InvalidStateTransition(alert_id, latest.status, action)
        return updated

    async def acknowledge(self, alert_id: str) -> Alert:
        return await self.transition(alert_id, AlertStatus.ACKNOWLEDGED)

    async def dismiss(self, alert_id: str) -> Alert:
        return await self.transition(alert_id, AlertStatus.DISMISSED)

    async def complete(self, alert_id: str) -> Alert:
        return await self.transition(alert_id, AlertStatus.COMPLETED)

    async def cleanup(self, retention_days: Optional[int] = None) -> int:
        """Purge completed/dismissed alerts untouched for longer than the retention window."""
        if retention_days is None:
            retention_days = settings.ALERT_RETENTION_DAYS

        deleted = await self.store.delete_older_than(retention_days, TERMINAL_STATUSES)
        await self.audit.log_cleanup(deleted, retention_days)
        await self.db.commit()

        logger.info(f"Alert cleanup removed {deleted} alerts older than {retention_days} days")
        return deleted
