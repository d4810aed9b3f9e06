"""
Alert Models

Persisted reminder alerts raised for approaching business deadlines.
"""

from enum import Enum

from sqlalchemy import Column, String, Integer, Date, DateTime, Boolean, Index, text

from compliance_alerts.database import Base
from compliance_alerts.utils import generate_id, utcnow


class EntityType(str, Enum):
    """Monitored record types. Values are stored as Alert.reference_type."""
    LICENSE = "license"
    ENLISTMENT = "enlistment"
    BANK_GUARANTEE = "bank_guarantee"
    TAX_COMPLIANCE = "tax_compliance"
    TENDER = "tender"
    LOAN = "loan"
    LOAN_PAYMENT = "loan_payment"


class AlertType(str, Enum):
    """Kinds of deadline an alert can be raised for."""
    LICENSE_EXPIRY = "license_expiry"
    ENLISTMENT_EXPIRY = "enlistment_expiry"
    BG_EXPIRY = "bg_expiry"
    TAX_DEADLINE = "tax_deadline"
    TENDER_DEADLINE = "tender_deadline"
    LOAN_MATURITY = "loan_maturity"
    LOAN_INSTALLMENT = "loan_installment"


class AlertPriority(str, Enum):
    """Priority tiers, tightest deadline first."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertStatus(str, Enum):
    """Lifecycle status of an alert."""
    PENDING = "pending"              # Newly generated, nobody has looked at it
    ACKNOWLEDGED = "acknowledged"    # Seen, being worked on
    COMPLETED = "completed"          # Underlying deadline handled
    DISMISSED = "dismissed"          # Closed without action


ACTIVE_STATUSES = (AlertStatus.PENDING, AlertStatus.ACKNOWLEDGED)
TERMINAL_STATUSES = (AlertStatus.COMPLETED, AlertStatus.DISMISSED)

# Sort weight used for "most urgent first" ordering
PRIORITY_RANK = {
    AlertPriority.HIGH: 0,
    AlertPriority.MEDIUM: 1,
    AlertPriority.LOW: 2,
}


class Alert(Base):
    """
    A reminder raised for one deadline of one monitored record.

    The dedup key (reference_type, reference_id, alert_type) identifies the
    underlying deadline. At most one alert per key may be pending or
    acknowledged; the partial unique index below enforces that at the
    database level as well.
    """
    __tablename__ = "alerts"

    id = Column(String, primary_key=True, default=lambda: generate_id("alert"))

    # What triggered it
    alert_type = Column(String, nullable=False)
    reference_type = Column(String, nullable=False)
    reference_id = Column(Integer, nullable=False)
    firm_id = Column(Integer, nullable=True, index=True)

    # Rendered at generation time
    title = Column(String, nullable=False)
    message = Column(String, nullable=True)

    # Timing
    alert_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)

    priority = Column(String, nullable=False, default=AlertPriority.MEDIUM.value)
    status = Column(String, nullable=False, default=AlertStatus.PENDING.value, index=True)

    # Reserved for outbound delivery
    notification_sent = Column(Boolean, nullable=False, default=False)

    acknowledged_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index(
            "uq_alerts_active_dedup_key",
            "reference_type",
            "reference_id",
            "alert_type",
            unique=True,
            sqlite_where=text("status IN ('pending', 'acknowledged')"),
            postgresql_where=text("status IN ('pending', 'acknowledged')"),
        ),
        Index("ix_alerts_status_priority", "status", "priority"),
    )

    def __repr__(self) -> str:
        return (
            f"<Alert {self.id} {self.alert_type} "
            f"{self.reference_type}:{self.reference_id} {self.priority}/{self.status}>"
        )
