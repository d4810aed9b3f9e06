"""
Alert Scheduler

Drives generation runs:
- Once shortly after startup (delayed so it does not contend with startup I/O)
- Every ALERT_INTERVAL_MINUTES after that
- On demand from the admin generate endpoint

Only one run may be in flight. A trigger that arrives while a run is
active is coalesced: it neither starts a second run nor queues one, since
the next scheduled tick re-scans anyway.

Uses APScheduler for job scheduling.
"""

import logging
import threading
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional

from compliance_alerts.audit.services import AuditService
from compliance_alerts.config import settings
from compliance_alerts.database import async_session_maker
from compliance_alerts.utils import generate_id, utcnow
from .engine import AlertEngine, GenerationSummary
from .exceptions import EngineBusy
from .lifecycle import LifecycleManager
from .rules import ThresholdRegistry
from .scanners import EntityScanner

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class AlertScheduler:
    """
    Single-flight orchestrator around AlertEngine.

    The guard is a non-blocking lock acquire, so testing for idle and
    claiming the run is one atomic step. It is released in a finally
    block whatever the run's outcome.
    """

    def __init__(
        self,
        session_factory: Callable = async_session_maker,
        registry: Optional[ThresholdRegistry] = None,
        scanners: Optional[List[EntityScanner]] = None,
        today: Callable[[], date] = date.today,
    ):
        self._session_factory = session_factory
        self._registry = registry
        self._scanners = scanners
        self._today = today

        self._guard = threading.Lock()
        self._state = RunState.IDLE
        self._current_run_id: Optional[str] = None
        self._last_summary: Optional[GenerationSummary] = None
        self._last_cleanup_at: Optional[datetime] = None
        self._last_cleanup_deleted: Optional[int] = None

    @property
    def registry(self) -> ThresholdRegistry:
        if self._registry is None:
            self.load_registry()
        return self._registry

    def load_registry(self) -> ThresholdRegistry:
        """
        Build the threshold registry from settings.

        Raises:
            ValueError: an override names an unknown entity type or priority,
                or its day counts are empty, negative or repeated
        """
        self._registry = ThresholdRegistry.from_settings(settings.ALERT_THRESHOLD_OVERRIDES)
        return self._registry

    @property
    def state(self) -> RunState:
        return self._state

    async def trigger(self, trigger: str = "scheduled") -> Optional[GenerationSummary]:
        """
        Start a run unless one is already active.

        Returns the run summary, or None if the trigger was coalesced into
        the active run. Never raises for run failures.
        """
        if not self._guard.acquire(blocking=False):
            logger.info(f"Alert generation already running, {trigger} trigger coalesced")
            return None

        run_id = generate_id("run")
        self._state = RunState.RUNNING
        self._current_run_id = run_id
        started_at = utcnow()
        try:
            summary = await self._run(trigger, run_id)
        except Exception as e:
            logger.error(f"Alert generation run {run_id} failed: {e}")
            summary = GenerationSummary(
                run_id=run_id,
                trigger=trigger,
                started_at=started_at,
                completed_at=utcnow(),
                errors={"orchestrator": str(e)},
            )
        finally:
            self._state = RunState.IDLE
            self._current_run_id = None
            self._guard.release()

        self._last_summary = summary
        return summary

    async def _run(self, trigger: str, run_id: str) -> GenerationSummary:
        logger.info(f"Starting alert generation run {run_id} ({trigger})")
        async with self._session_factory() as db:
            engine = AlertEngine(
                db,
                registry=self.registry,
                scanners=self._scanners,
                today=self._today(),
            )
            summary = await engine.run(trigger=trigger, run_id=run_id)

            try:
                audit = AuditService(db, source="system")
                await audit.log_run(run_id, summary.to_dict())
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(f"Failed to record alert run {run_id} in audit log: {e}")

        return summary

    async def generate(self) -> GenerationSummary:
        """
        Manual trigger.

        Raises:
            EngineBusy: a run is already in progress
        """
        summary = await self.trigger("manual")
        if summary is None:
            raise EngineBusy()
        return summary

    async def run_startup(self) -> Optional[GenerationSummary]:
        return await self.trigger("startup")

    async def run_scheduled(self) -> Optional[GenerationSummary]:
        return await self.trigger("scheduled")

    async def run_cleanup(self, retention_days: Optional[int] = None) -> Optional[int]:
        """Retention pass, independent of generation runs. Returns deleted count or None on failure."""
        try:
            async with self._session_factory() as db:
                lifecycle = LifecycleManager(db, source="system")
                deleted = await lifecycle.cleanup(retention_days)
        except Exception as e:
            logger.error(f"Alert cleanup failed: {e}")
            return None

        self._last_cleanup_at = utcnow()
        self._last_cleanup_deleted = deleted
        return deleted

    def get_status(self) -> dict:
        """Get scheduler state and the last run's summary."""
        last = self._last_summary
        return {
            "state": self._state.value,
            "current_run_id": self._current_run_id,
            "last_run": last.to_dict() if last else None,
            "last_cleanup_at": self._last_cleanup_at.isoformat() if self._last_cleanup_at else None,
            "last_cleanup_deleted": self._last_cleanup_deleted,
            "thresholds": self.registry.to_dict(),
        }


# Singleton instance for use across the application
alert_scheduler = AlertScheduler()


def setup_apscheduler(scheduler, orchestrator: Optional[AlertScheduler] = None):
    """
    Configure APScheduler with alert jobs.

    Usage:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler)
        scheduler.start()

    Args:
        scheduler: APScheduler instance (AsyncIOScheduler)
        orchestrator: AlertScheduler to drive, defaults to the singleton
    """
    orchestrator = orchestrator or alert_scheduler

    # One run shortly after startup
    scheduler.add_job(
        orchestrator.run_startup,
        'date',
        run_date=datetime.now() + timedelta(seconds=settings.ALERT_STARTUP_DELAY_SECONDS),
        id='alert_generation_startup',
        name='Alert Generation (startup)',
        replace_existing=True,
    )

    # Recurring generation
    scheduler.add_job(
        orchestrator.run_scheduled,
        'interval',
        minutes=settings.ALERT_INTERVAL_MINUTES,
        id='alert_generation',
        name='Alert Generation',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    # Retention cleanup
    scheduler.add_job(
        orchestrator.run_cleanup,
        'interval',
        hours=settings.ALERT_CLEANUP_INTERVAL_HOURS,
        id='alert_cleanup',
        name='Alert Retention Cleanup',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    logger.info(
        f"Alert scheduler jobs configured: first run in {settings.ALERT_STARTUP_DELAY_SECONDS}s, "
        f"then every {settings.ALERT_INTERVAL_MINUTES} min"
    )
