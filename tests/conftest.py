"""Shared test fixtures for the compliance alerts tests."""
from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from compliance_alerts.database import Base
import compliance_alerts.records.models  # noqa: F401
import compliance_alerts.alerts.models  # noqa: F401
import compliance_alerts.audit.models  # noqa: F401
from compliance_alerts.alerts.models import AlertPriority, AlertStatus, AlertType, EntityType
from compliance_alerts.alerts.store import AlertStore
from compliance_alerts.alerts.templates import AlertPayload
from compliance_alerts.records.models import Firm, License, Enlistment


TODAY = date(2026, 3, 2)


@pytest.fixture
def today():
    return TODAY


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def firm(db):
    firm = Firm(id=1, name="Acme Builders")
    db.add(firm)
    await db.commit()
    return firm


async def add_license(db, firm_id, days_out, license_type="trade_license", status="active", today=TODAY, id=None):
    lic = License(
        id=id,
        firm_id=firm_id,
        license_type=license_type,
        expiry_date=today + timedelta(days=days_out),
        status=status,
    )
    db.add(lic)
    await db.commit()
    return lic


async def add_enlistment(db, firm_id, days_out, authority="PWD", category="A", status="active", today=TODAY):
    enlistment = Enlistment(
        firm_id=firm_id,
        authority=authority,
        category=category,
        expiry_date=today + timedelta(days=days_out),
        status=status,
    )
    db.add(enlistment)
    await db.commit()
    return enlistment


def make_payload(reference_id=1, priority=AlertPriority.MEDIUM, firm_id=1,
                 entity_type=EntityType.LICENSE, alert_type=AlertType.LICENSE_EXPIRY):
    return AlertPayload(
        alert_type=alert_type,
        reference_type=entity_type,
        reference_id=reference_id,
        firm_id=firm_id,
        title="Trade License expiring soon",
        message="Trade License for Acme Builders expires in 20 days",
        alert_date=TODAY,
        due_date=TODAY + timedelta(days=20),
        priority=priority,
    )


async def make_alert(db, status=AlertStatus.PENDING, **kwargs):
    """Create an alert through the store, then move it to `status`."""
    store = AlertStore(db)
    alert = await store.create(make_payload(**kwargs))
    if status != AlertStatus.PENDING:
        alert = await store.set_status(alert.id, status)
    return alert
