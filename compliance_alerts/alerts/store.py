"""
Alert Store

Persistence boundary for alerts. Every write is committed on its own, so
each create/update/delete is one atomic operation; there is no transaction
spanning several alerts. Database errors are rolled back and re-raised as
StoreFailure so callers can skip a single record and carry on.
"""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import select, delete, update, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.utils import utcnow
from .exceptions import StoreFailure, AlertNotFound
from .models import Alert, AlertPriority, AlertStatus, ACTIVE_STATUSES, TERMINAL_STATUSES, PRIORITY_RANK
from .templates import AlertPayload

logger = logging.getLogger(__name__)


def _values(statuses: Iterable) -> List[str]:
    return [getattr(s, "value", s) for s in statuses]


_priority_order = case(
    {priority.value: rank for priority, rank in PRIORITY_RANK.items()},
    value=Alert.priority,
    else_=len(PRIORITY_RANK),
)


class AlertStore:
    """
    Async store over the alerts table.

    Usage:
        store = AlertStore(db)
        existing = await store.find_active_by_key("license", 12, "license_expiry")
        alert = await store.create(payload)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure(operation, e) from e

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get(self, alert_id: str, refresh: bool = False) -> Optional[Alert]:
        """Load an alert; `refresh` re-reads it even if the session already holds it."""
        try:
            return await self.db.get(Alert, alert_id, populate_existing=refresh)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("get", e) from e

    async def get_or_raise(self, alert_id: str) -> Alert:
        alert = await self.get(alert_id)
        if alert is None:
            raise AlertNotFound(alert_id)
        return alert

    async def find_active_by_key(
        self, reference_type: str, reference_id: int, alert_type: str
    ) -> Optional[Alert]:
        """The pending or acknowledged alert for a dedup key, if any."""
        try:
            result = await self.db.execute(
                select(Alert)
                .where(Alert.reference_type == getattr(reference_type, "value", reference_type))
                .where(Alert.reference_id == reference_id)
                .where(Alert.alert_type == getattr(alert_type, "value", alert_type))
                .where(Alert.status.in_(_values(ACTIVE_STATUSES)))
                .order_by(Alert.created_at.desc())
            )
            return result.scalars().first()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("find_active_by_key", e) from e

    async def list_by_filter(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        firm_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Alert]:
        """Alerts matching the filters, most urgent first."""
        query = select(Alert)
        if status:
            query = query.where(Alert.status == getattr(status, "value", status))
        if priority:
            query = query.where(Alert.priority == getattr(priority, "value", priority))
        if firm_id is not None:
            query = query.where(Alert.firm_id == firm_id)
        query = query.order_by(_priority_order, Alert.alert_date, Alert.due_date, Alert.id)
        if limit:
            query = query.limit(limit)

        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("list_by_filter", e) from e

    async def stats(self, firm_id: Optional[int] = None) -> dict:
        """Counts by priority, type and status, plus the most urgent pending alerts."""

        def scoped(query):
            if firm_id is not None:
                query = query.where(Alert.firm_id == firm_id)
            return query

        pending = AlertStatus.PENDING.value
        try:
            by_priority = await self.db.execute(
                scoped(
                    select(Alert.priority, func.count(Alert.id))
                    .where(Alert.status == pending)
                    .group_by(Alert.priority)
                )
            )
            by_type = await self.db.execute(
                scoped(
                    select(Alert.alert_type, func.count(Alert.id))
                    .where(Alert.status == pending)
                    .group_by(Alert.alert_type)
                )
            )
            by_status = await self.db.execute(
                scoped(select(Alert.status, func.count(Alert.id)).group_by(Alert.status))
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("stats", e) from e

        pending_counts: Dict[str, int] = {p.value: 0 for p in AlertPriority}
        pending_counts.update({priority: count for priority, count in by_priority.all()})
        pending_counts["total"] = sum(pending_counts[p.value] for p in AlertPriority)

        return {
            "pending": pending_counts,
            "by_type": {alert_type: count for alert_type, count in by_type.all()},
            "by_status": {status: count for status, count in by_status.all()},
            "recent": await self.list_by_filter(status=pending, firm_id=firm_id, limit=10),
        }

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def create(self, payload: AlertPayload) -> Alert:
        alert = Alert(**payload.to_dict())
        self.db.add(alert)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("create", e) from e
        await self._commit("create")
        return alert

    async def update_priority(
        self,
        alert_id: str,
        priority: AlertPriority,
        due_date: Optional[date],
        alert_date: date,
        title: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Alert:
        """Refresh an existing alert in place after its tier changed."""
        alert = await self.get_or_raise(alert_id)
        alert.priority = AlertPriority(priority).value
        alert.due_date = due_date
        alert.alert_date = alert_date
        if title is not None:
            alert.title = title
        if message is not None:
            alert.message = message
        alert.updated_at = utcnow()
        await self._commit("update_priority")
        return alert

    async def set_status(
        self,
        alert_id: str,
        status: AlertStatus,
        expected: Optional[Iterable[AlertStatus]] = None,
    ) -> Optional[Alert]:
        """
        Write a new status in a single UPDATE.

        With `expected`, the row is only changed while its stored status is
        still one of those; otherwise nothing is written, anything pending on
        the session is rolled back and None is returned.
        """
        status = AlertStatus(status)
        now = utcnow()
        values = {"status": status.value, "updated_at": now}
        if status == AlertStatus.ACKNOWLEDGED:
            values["acknowledged_at"] = now
        elif status in TERMINAL_STATUSES:
            values["resolved_at"] = now

        statement = update(Alert).where(Alert.id == alert_id)
        if expected is not None:
            statement = statement.where(Alert.status.in_(_values(expected)))
        try:
            result = await self.db.execute(
                statement.values(**values).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("set_status", e) from e

        if not result.rowcount:
            await self.db.rollback()
            if expected is None:
                raise AlertNotFound(alert_id)
            return None

        await self._commit("set_status")
        return await self.get(alert_id, refresh=True)

    async def delete_older_than(
        self,
        retention_days: int,
        statuses: Iterable[AlertStatus] = TERMINAL_STATUSES,
        now: Optional[datetime] = None,
    ) -> int:
        """Delete alerts in `statuses` whose last change is older than the retention window."""
        statuses = _values(statuses)
        active = set(_values(ACTIVE_STATUSES))
        if active.intersection(statuses):
            raise ValueError("Only terminal alerts can be purged")

        cutoff = (now or utcnow()) - timedelta(days=retention_days)
        try:
            result = await self.db.execute(
                delete(Alert)
                .where(Alert.status.in_(statuses))
                .where(Alert.updated_at < cutoff)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreFailure("delete_older_than", e) from e
        await self._commit("delete_older_than")
        return result.rowcount or 0
