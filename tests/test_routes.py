"""Tests for the alerts HTTP API."""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from compliance_alerts.alerts.models import AlertPriority, AlertStatus
from compliance_alerts.alerts.routes import get_alert_scheduler
from compliance_alerts.alerts.rules import ThresholdRegistry
from compliance_alerts.alerts.scheduler import AlertScheduler
from compliance_alerts.alerts.store import AlertStore
from compliance_alerts.database import get_db
from compliance_alerts.main import app
from .conftest import TODAY, add_license, make_alert


@pytest.fixture
def orchestrator(session_factory):
    return AlertScheduler(
        session_factory=session_factory,
        registry=ThresholdRegistry.default(),
        today=lambda: TODAY,
    )


@pytest_asyncio.fixture
async def client(session_factory, orchestrator):
    async def override_get_db():
        async with session_factory() as session:
            yield session
            if session.new or session.dirty or session.deleted:
                await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_alert_scheduler] = lambda: orchestrator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


class TestListAndStats:

    @pytest.mark.asyncio
    async def test_list_filters(self, client, db):
        await make_alert(db, reference_id=1, priority=AlertPriority.HIGH, firm_id=1)
        await make_alert(db, reference_id=2, priority=AlertPriority.LOW, firm_id=2)
        await make_alert(db, reference_id=3, status=AlertStatus.DISMISSED, firm_id=1)

        response = await client.get("/api/alerts", params={"status": "pending"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert [a["priority"] for a in body["alerts"]] == ["high", "low"]

        response = await client.get("/api/alerts", params={"firm_id": 1})
        assert response.json()["total"] == 2

    @pytest.mark.asyncio
    async def test_invalid_filter_value(self, client):
        response = await client.get("/api/alerts", params={"priority": "urgent"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_stats(self, client, db):
        await make_alert(db, reference_id=1, priority=AlertPriority.HIGH)
        await make_alert(db, reference_id=2, priority=AlertPriority.MEDIUM)

        response = await client.get("/api/alerts/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["pending"] == {"high": 1, "medium": 1, "low": 0, "total": 2}
        assert body["by_type"] == {"license_expiry": 2}
        assert len(body["recent"]) == 2

    @pytest.mark.asyncio
    async def test_get_missing_alert(self, client):
        response = await client.get("/api/alerts/alert_nope")
        assert response.status_code == 404


class TestLifecycleActions:

    @pytest.mark.asyncio
    async def test_acknowledge_then_dismiss(self, client, db):
        alert = await make_alert(db)

        response = await client.post(f"/api/alerts/{alert.id}/acknowledge")
        assert response.status_code == 200
        assert response.json()["status"] == "acknowledged"

        response = await client.post(f"/api/alerts/{alert.id}/dismiss")
        assert response.status_code == 200
        assert response.json()["status"] == "dismissed"

        response = await client.get(f"/api/alerts/{alert.id}/history")
        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [e["action"] for e in entries] == ["dismiss", "acknowledge"]

    @pytest.mark.asyncio
    async def test_invalid_transition_is_conflict(self, client, db):
        alert = await make_alert(db, status=AlertStatus.COMPLETED)

        response = await client.post(f"/api/alerts/{alert.id}/acknowledge")

        assert response.status_code == 409
        assert (await AlertStore(db).get(alert.id, refresh=True)).status == "completed"

    @pytest.mark.asyncio
    async def test_action_on_missing_alert(self, client):
        response = await client.post("/api/alerts/alert_nope/complete")
        assert response.status_code == 404


class TestAdminActions:

    @pytest.mark.asyncio
    async def test_generate(self, client, db, firm):
        await add_license(db, firm.id, 6)

        response = await client.post("/api/alerts/generate")

        assert response.status_code == 200
        body = response.json()
        assert body["trigger"] == "manual"
        assert body["created"] == 1
        assert body["errors"] == {}
        assert body["by_entity_type"]["license"]["created"] == 1

    @pytest.mark.asyncio
    async def test_generate_while_busy(self, client, orchestrator):
        # Simulate a run in flight
        orchestrator._guard.acquire()
        try:
            response = await client.post("/api/alerts/generate")
        finally:
            orchestrator._guard.release()

        assert response.status_code == 409
        assert "try again later" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_cleanup(self, client, db):
        alert = await make_alert(db, status=AlertStatus.DISMISSED)
        alert.updated_at = alert.updated_at - timedelta(days=90)
        await db.commit()

        response = await client.post("/api/alerts/cleanup", json={"retention_days": 30})

        assert response.status_code == 200
        assert response.json() == {"deleted": 1, "retention_days": 30}

    @pytest.mark.asyncio
    async def test_scheduler_status(self, client):
        response = await client.get("/api/alerts/scheduler/status")
        assert response.status_code == 200
        assert response.json()["state"] == "idle"

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy"}
