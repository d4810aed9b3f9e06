"""
Alert Templates

Renders the title and message of an alert from a scanned record. Each
entity type has a plain format-string template; rendering is pure string
substitution over the record's fields.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional

from .models import EntityType, AlertType, AlertPriority, AlertStatus
from .rules import ALERT_RULES
from .scanners import TrackableRecord


UNKNOWN_FIRM = "Unknown firm"

LICENSE_TYPE_LABELS = {
    "trade_license": "Trade License",
    "tin": "TIN",
    "vat": "VAT",
    "irc": "IRC",
    "fire": "Fire License",
    "environmental": "Environmental License",
}


# (title, message) per entity type. {when} is the rendered time phrase,
# e.g. "expires in 6 days" / "due today" / "overdue by 2 days".
ALERT_TEMPLATES = {
    EntityType.LICENSE: (
        "{license_label} expiring soon",
        "{license_label} for {firm_name} {when}",
    ),
    EntityType.ENLISTMENT: (
        "{authority} enlistment expiring",
        "{authority} ({category}) for {firm_name} {when}",
    ),
    EntityType.BANK_GUARANTEE: (
        "Bank Guarantee expiring soon",
        "{bg_type} ({bg_number}) for {firm_name} - Amount: {amount} {when}",
    ),
    EntityType.TAX_COMPLIANCE: (
        "Tax compliance deadline approaching",
        "{compliance_type} for {firm_name} ({fiscal_year}) {when}",
    ),
    EntityType.TENDER: (
        "Tender submission deadline approaching",
        "{tender_ref} - {procuring_entity} submission {when}",
    ),
    EntityType.LOAN: (
        "Loan maturity approaching",
        "{loan_type} ({bank_name}) for {firm_name} - Outstanding: {outstanding_amount} {when}",
    ),
    EntityType.LOAN_PAYMENT: (
        "Loan installment due",
        "{loan_type} installment ({bank_name}) for {firm_name} - Amount: {amount} {when}",
    ),
}

# Verb used while the deadline is still ahead
_UPCOMING_VERBS = {
    EntityType.LICENSE: "expires",
    EntityType.ENLISTMENT: "expires",
    EntityType.BANK_GUARANTEE: "expires",
    EntityType.TAX_COMPLIANCE: "due",
    EntityType.TENDER: "due",
    EntityType.LOAN: "matures",
    EntityType.LOAN_PAYMENT: "due",
}


@dataclass
class AlertPayload:
    """A fully rendered alert, ready for the store to persist."""
    alert_type: AlertType
    reference_type: EntityType
    reference_id: int
    firm_id: Optional[int]
    title: str
    message: str
    alert_date: date
    due_date: date
    priority: AlertPriority
    status: AlertStatus = AlertStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_type": self.alert_type.value,
            "reference_type": self.reference_type.value,
            "reference_id": self.reference_id,
            "firm_id": self.firm_id,
            "title": self.title,
            "message": self.message,
            "alert_date": self.alert_date,
            "due_date": self.due_date,
            "priority": self.priority.value,
            "status": self.status.value,
        }


def format_license_type(license_type: Optional[str]) -> str:
    if not license_type:
        return "License"
    return LICENSE_TYPE_LABELS.get(
        license_type, " ".join(word.capitalize() for word in license_type.split("_"))
    )


def describe_days_remaining(entity_type: EntityType, days_remaining: int) -> str:
    """Time phrase for a message: expires in 6 days, due today, overdue by 2 days."""
    if days_remaining == 0:
        return "due today"
    count = abs(days_remaining)
    unit = "day" if count == 1 else "days"
    if days_remaining > 0:
        verb = _UPCOMING_VERBS.get(entity_type, "due")
        return f"{verb} in {count} {unit}"
    return f"overdue by {count} {unit}"


class _Defaulting(dict):
    """Format mapping that renders missing or empty fields as '-'."""

    def __missing__(self, key):
        return "-"


def _fields(record: TrackableRecord) -> _Defaulting:
    fields = _Defaulting(
        {key: value for key, value in record.details.items() if value not in (None, "")}
    )
    fields["firm_name"] = record.firm_name or UNKNOWN_FIRM
    fields["when"] = describe_days_remaining(record.entity_type, record.days_remaining)
    if record.entity_type == EntityType.LICENSE:
        fields["license_label"] = format_license_type(record.details.get("license_type"))
    return fields


def render(record: TrackableRecord) -> tuple:
    """Return (title, message) for the record."""
    title_template, message_template = ALERT_TEMPLATES[record.entity_type]
    fields = _fields(record)
    return title_template.format_map(fields), message_template.format_map(fields)


def build_alert(record: TrackableRecord, priority: AlertPriority, today: date) -> AlertPayload:
    """Render the alert for a record that fell inside a reminder window."""
    title, message = render(record)
    return AlertPayload(
        alert_type=ALERT_RULES[record.entity_type]["alert_type"],
        reference_type=record.entity_type,
        reference_id=record.record_id,
        firm_id=record.firm_id,
        title=title,
        message=message,
        alert_date=today,
        due_date=record.due_date,
        priority=AlertPriority(priority),
    )
