"""
Audit Log model for alert lifecycle changes.

Records every status transition, retention purge and generation run so
the history of an alert survives after the alert itself is purged.
"""
from sqlalchemy import Column, String, DateTime, Text, Index, JSON

from compliance_alerts.database import Base
from compliance_alerts.utils import generate_id, utcnow


class AlertAuditLog(Base):
    __tablename__ = "alert_audit_logs"

    id = Column(String, primary_key=True, default=lambda: generate_id("audit"))

    # What changed?
    entity_type = Column(String, nullable=False, index=True)
    # Options: "alert", "alert_engine"

    entity_id = Column(String, nullable=False, index=True)

    action = Column(String, nullable=False, index=True)
    # Options: "acknowledge", "dismiss", "complete", "cleanup", "generate"

    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)

    # What triggered the change?
    source = Column(String, nullable=False, default="api")
    # Options: "api", "system"

    # Additional context ('metadata' is reserved by SQLAlchemy)
    extra_data = Column("extra_data", JSON, nullable=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_alert_audit_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return (
            f"<AlertAuditLog {self.id}: "
            f"{self.action} on {self.entity_type}/{self.entity_id} "
            f"at {self.created_at}>"
        )
