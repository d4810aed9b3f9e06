"""Tests for the single-flight alert scheduler."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from compliance_alerts.alerts.exceptions import EngineBusy
from compliance_alerts.alerts.models import Alert, EntityType
from compliance_alerts.alerts.rules import ThresholdRegistry
from compliance_alerts.alerts.scanners import LicenseScanner, get_scanners
from compliance_alerts import main
from compliance_alerts.alerts import scheduler as scheduler_module
from compliance_alerts.alerts.scheduler import AlertScheduler, RunState, setup_apscheduler
from compliance_alerts.config import Settings, settings
from compliance_alerts.audit.models import AlertAuditLog
from .conftest import TODAY, add_license


class BlockingScanner(LicenseScanner):
    """Holds the run open until the test releases it."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def fetch_candidates(self, db, today, window_days):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return []


@pytest.fixture
def make_scheduler(session_factory):
    def _make(scanners=None, factory=None):
        return AlertScheduler(
            session_factory=factory or session_factory,
            registry=ThresholdRegistry.default(),
            scanners=scanners,
            today=lambda: TODAY,
        )
    return _make


class TestSingleFlight:

    @pytest.mark.asyncio
    async def test_trigger_during_run_is_coalesced(self, make_scheduler):
        scanner = BlockingScanner()
        scheduler = make_scheduler(scanners=[scanner])

        running = asyncio.create_task(scheduler.trigger("scheduled"))
        await scanner.started.wait()

        assert scheduler.state == RunState.RUNNING
        assert await scheduler.trigger("manual") is None
        with pytest.raises(EngineBusy):
            await scheduler.generate()

        scanner.release.set()
        summary = await running

        assert summary.trigger == "scheduled"
        assert scanner.calls == 1
        assert scheduler.state == RunState.IDLE

    @pytest.mark.asyncio
    async def test_runs_again_after_completion(self, make_scheduler, db, firm):
        await add_license(db, firm.id, 6)
        scheduler = make_scheduler(scanners=get_scanners([EntityType.LICENSE]))

        first = await scheduler.generate()
        second = await scheduler.generate()

        assert first.created == 1
        assert second.created == 0
        assert second.skipped == 1
        result = await db.execute(select(Alert))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_flag_reset_after_unexpected_error(self, make_scheduler):
        def broken_factory():
            raise RuntimeError("database unavailable")

        scheduler = make_scheduler(factory=broken_factory)

        summary = await scheduler.trigger("scheduled")

        assert summary.status == "failed"
        assert "database unavailable" in summary.errors["orchestrator"]
        assert scheduler.state == RunState.IDLE
        assert scheduler.get_status()["last_run"]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_run_is_audited(self, make_scheduler, db, firm):
        await add_license(db, firm.id, 6)
        scheduler = make_scheduler()

        summary = await scheduler.generate()

        result = await db.execute(
            select(AlertAuditLog).where(AlertAuditLog.entity_id == summary.run_id)
        )
        log = result.scalar_one()
        assert log.action == "generate"
        assert log.source == "system"
        assert log.extra_data["created"] == 1


class TestCleanupJob:

    @pytest.mark.asyncio
    async def test_run_cleanup_records_status(self, make_scheduler):
        scheduler = make_scheduler()

        deleted = await scheduler.run_cleanup(retention_days=30)

        status = scheduler.get_status()
        assert deleted == 0
        assert status["last_cleanup_deleted"] == 0
        assert status["last_cleanup_at"] is not None

    @pytest.mark.asyncio
    async def test_run_cleanup_failure_is_logged_not_raised(self, make_scheduler):
        def broken_factory():
            raise RuntimeError("database unavailable")

        scheduler = make_scheduler(factory=broken_factory)

        assert await scheduler.run_cleanup() is None


class TestSetupAPScheduler:

    def test_jobs_configured(self, make_scheduler):
        scheduler = MagicMock()
        orchestrator = make_scheduler()

        before = datetime.now()
        setup_apscheduler(scheduler, orchestrator)
        after = datetime.now()

        jobs = {call.kwargs["id"]: call for call in scheduler.add_job.call_args_list}
        assert set(jobs) == {"alert_generation_startup", "alert_generation", "alert_cleanup"}

        startup = jobs["alert_generation_startup"]
        assert startup.args == (orchestrator.run_startup, "date")
        delay = timedelta(seconds=settings.ALERT_STARTUP_DELAY_SECONDS)
        assert before + delay <= startup.kwargs["run_date"] <= after + delay

        recurring = jobs["alert_generation"]
        assert recurring.args == (orchestrator.run_scheduled, "interval")
        assert recurring.kwargs["minutes"] == settings.ALERT_INTERVAL_MINUTES
        assert recurring.kwargs["max_instances"] == 1
        assert recurring.kwargs["coalesce"] is True

        cleanup = jobs["alert_cleanup"]
        assert cleanup.args == (orchestrator.run_cleanup, "interval")
        assert cleanup.kwargs["hours"] == settings.ALERT_CLEANUP_INTERVAL_HOURS
        assert cleanup.kwargs["max_instances"] == 1
        assert cleanup.kwargs["coalesce"] is True

    def test_status_lists_thresholds(self, make_scheduler):
        status = make_scheduler().get_status()
        assert status["state"] == "idle"
        assert status["last_run"] is None
        assert status["thresholds"]["license"][0]["days_before_due"] == 7


class TestThresholdOverrides:

    @pytest.fixture
    def bad_settings(self, monkeypatch):
        monkeypatch.setenv("ALERT_THRESHOLD_OVERRIDES", '{"license": {"7": "urgent"}}')
        overridden = Settings()
        monkeypatch.setattr(scheduler_module, "settings", overridden)
        return overridden

    def test_overrides_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALERT_THRESHOLD_OVERRIDES", '{"license": {"14": "high", "45": "low"}}')
        monkeypatch.setattr(scheduler_module, "settings", Settings())

        registry = AlertScheduler().load_registry()

        assert registry.widest_window(EntityType.LICENSE) == 45

    def test_invalid_override_raises(self, bad_settings):
        assert bad_settings.ALERT_THRESHOLD_OVERRIDES == {"license": {7: "urgent"}}
        with pytest.raises(ValueError):
            AlertScheduler().load_registry()

    @pytest.mark.asyncio
    async def test_invalid_override_stops_startup(self, bad_settings, monkeypatch):
        init_models = AsyncMock()
        monkeypatch.setattr(main, "init_models", init_models)
        monkeypatch.setattr(main, "alert_scheduler", AlertScheduler())

        with pytest.raises(ValueError):
            async with main.lifespan(main.app):
                pass

        init_models.assert_not_called()
