"""
Alert Engine

One generation pass over every registered scanner:

    scanner.fetch_candidates -> registry.priority_for -> Deduplicator
        -> build_alert -> AlertStore.create / update_priority

Scanners run one after another so writes for a run stay serialized. A
scanner that fails is recorded against its entity type and the pass moves
on; a store failure on one record skips that record only.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.utils import generate_id, utcnow
from .dedup import Deduplicator, DedupAction
from .exceptions import AlertEngineError, ScannerFailure
from .models import EntityType
from .rules import ThresholdRegistry
from .scanners import EntityScanner, TrackableRecord, get_scanners
from .store import AlertStore
from .templates import build_alert

logger = logging.getLogger(__name__)


@dataclass
class EntityRunStats:
    scanned: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "scanned": self.scanned,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
        }


@dataclass
class GenerationSummary:
    """Outcome of one generation run."""
    run_id: str
    trigger: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    by_entity_type: Dict[str, EntityRunStats] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def stats_for(self, entity_type: EntityType) -> EntityRunStats:
        return self.by_entity_type.setdefault(EntityType(entity_type).value, EntityRunStats())

    def _total(self, name: str) -> int:
        return sum(getattr(stats, name) for stats in self.by_entity_type.values())

    @property
    def created(self) -> int:
        return self._total("created")

    @property
    def updated(self) -> int:
        return self._total("updated")

    @property
    def skipped(self) -> int:
        return self._total("skipped")

    @property
    def failed(self) -> int:
        return self._total("failed")

    @property
    def status(self) -> str:
        if "orchestrator" in self.errors:
            return "failed"
        if self.errors or self.failed:
            return "completed_with_errors"
        return "completed"

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "trigger": self.trigger,
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "by_entity_type": {
                entity_type: stats.to_dict() for entity_type, stats in self.by_entity_type.items()
            },
            "errors": dict(self.errors),
        }


class AlertEngine:
    """
    Runs every scanner once and reconciles the alerts table with the results.

    This engine is called:
    - By the scheduler (startup run, then every interval)
    - On demand from the admin generate endpoint
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: Optional[ThresholdRegistry] = None,
        scanners: Optional[List[EntityScanner]] = None,
        today: Optional[date] = None,
    ):
        self.db = db
        self.registry = registry or ThresholdRegistry.default()
        self.scanners = scanners if scanners is not None else get_scanners()
        self.today = today or date.today()
        self.store = AlertStore(db)
        self.deduplicator = Deduplicator(self.store)

    async def run(self, trigger: str = "manual", run_id: Optional[str] = None) -> GenerationSummary:
        summary = GenerationSummary(
            run_id=run_id or generate_id("run"),
            trigger=trigger,
            started_at=utcnow(),
        )

        for scanner in self.scanners:
            entity_type = scanner.entity_type
            window = self.registry.widest_window(entity_type)
            if window is None:
                logger.warning(f"No thresholds configured for {entity_type.value}, skipping scanner")
                continue

            stats = summary.stats_for(entity_type)
            try:
                await self._run_scanner(scanner, window, stats)
            except Exception as e:
                failure = ScannerFailure(entity_type.value, e)
                logger.error(f"Alert scan for {entity_type.value} failed: {e}")
                summary.errors[entity_type.value] = str(failure)
                # Drop anything the failed scanner left half-done on the session
                await self.db.rollback()

        summary.completed_at = utcnow()
        logger.info(
            f"Alert generation {summary.run_id} ({trigger}) finished: "
            f"{summary.created} created, {summary.updated} updated, "
            f"{summary.skipped} unchanged, {summary.failed} failed, "
            f"{len(summary.errors)} scanner errors"
        )
        return summary

    async def _run_scanner(self, scanner: EntityScanner, window: int, stats: EntityRunStats) -> None:
        records = await scanner.fetch_candidates(self.db, self.today, window)
        stats.scanned += len(records)
        for record in records:
            await self._process_record(record, stats)

    async def _process_record(self, record: TrackableRecord, stats: EntityRunStats) -> None:
        priority = self.registry.priority_for(record.entity_type, record.days_remaining)
        if priority is None:
            stats.skipped += 1
            return

        decision = await self.deduplicator.decide(record, priority)
        if decision.action == DedupAction.ERROR:
            stats.failed += 1
            return
        if decision.action == DedupAction.SKIP:
            stats.skipped += 1
            return

        payload = build_alert(record, priority, self.today)
        try:
            if decision.action == DedupAction.CREATE:
                await self.store.create(payload)
                stats.created += 1
            else:
                await self.store.update_priority(
                    decision.existing.id,
                    payload.priority,
                    payload.due_date,
                    payload.alert_date,
                    title=payload.title,
                    message=payload.message,
                )
                stats.updated += 1
                logger.info(
                    f"Escalated alert {decision.existing.id} for "
                    f"{record.entity_type.value} {record.record_id}: {decision.reason}"
                )
        except AlertEngineError as e:
            logger.error(
                f"Could not {decision.action.value} alert for "
                f"{record.entity_type.value} {record.record_id}: {e}"
            )
            stats.failed += 1
