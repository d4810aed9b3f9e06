"""Audit trail for alert lifecycle changes and engine runs."""
from compliance_alerts.audit.models import AlertAuditLog
from compliance_alerts.audit.services import AuditService

__all__ = ["AlertAuditLog", "AuditService"]
