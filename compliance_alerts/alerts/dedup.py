"""
Alert Deduplication

Decides what to do with a scanned record that fell inside a reminder
window: create a new alert, refresh the open one in place when its tier
changed, or leave things alone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from .exceptions import StoreFailure
from .models import Alert, AlertPriority
from .rules import ALERT_RULES
from .scanners import TrackableRecord
from .store import AlertStore

logger = logging.getLogger(__name__)


class DedupAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"          # Open alert already has this priority
    ERROR = "error"        # Existence check failed, record left for the next run


@dataclass
class DedupDecision:
    action: DedupAction
    existing: Optional[Alert] = None
    reason: Optional[str] = None


class Deduplicator:
    """
    Looks up the open alert for a record's dedup key.

    If the lookup itself fails the record is skipped for this run, so a
    store outage can delay an alert but never duplicate one.
    """

    def __init__(self, store: AlertStore):
        self.store = store

    async def decide(self, record: TrackableRecord, priority: AlertPriority) -> DedupDecision:
        alert_type = ALERT_RULES[record.entity_type]["alert_type"]
        try:
            existing = await self.store.find_active_by_key(
                record.entity_type.value, record.record_id, alert_type.value
            )
        except StoreFailure as e:
            logger.error(
                f"Existence check failed for {record.entity_type.value} {record.record_id}, skipping: {e}"
            )
            return DedupDecision(DedupAction.ERROR, reason=str(e))

        if existing is None:
            return DedupDecision(DedupAction.CREATE)

        if existing.priority != AlertPriority(priority).value:
            return DedupDecision(
                DedupAction.UPDATE,
                existing=existing,
                reason=f"priority {existing.priority} -> {AlertPriority(priority).value}",
            )

        return DedupDecision(DedupAction.SKIP, existing=existing)
