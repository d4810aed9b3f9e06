"""Tests for alert title/message rendering."""

from datetime import timedelta

from compliance_alerts.alerts.models import EntityType, AlertType, AlertPriority, AlertStatus
from compliance_alerts.alerts.scanners import TrackableRecord
from compliance_alerts.alerts.templates import (
    build_alert,
    describe_days_remaining,
    format_license_type,
    render,
)
from .conftest import TODAY


def make_record(entity_type, days_remaining, firm_name="Acme Builders", **details):
    return TrackableRecord(
        entity_type=entity_type,
        record_id=42,
        firm_id=1,
        due_date=TODAY + timedelta(days=days_remaining),
        days_remaining=days_remaining,
        status="active",
        firm_name=firm_name,
        details=details,
    )


class TestBuildAlert:

    def test_license_alert(self):
        record = make_record(EntityType.LICENSE, 6, license_type="trade_license")

        payload = build_alert(record, AlertPriority.HIGH, TODAY)

        assert payload.alert_type == AlertType.LICENSE_EXPIRY
        assert payload.reference_type == EntityType.LICENSE
        assert payload.reference_id == 42
        assert payload.firm_id == 1
        assert payload.title == "Trade License expiring soon"
        assert payload.message == "Trade License for Acme Builders expires in 6 days"
        assert payload.alert_date == TODAY
        assert payload.due_date == TODAY + timedelta(days=6)
        assert payload.priority == AlertPriority.HIGH
        assert payload.status == AlertStatus.PENDING

    def test_to_dict_uses_plain_values(self):
        record = make_record(EntityType.TAX_COMPLIANCE, 2, compliance_type="monthly_vat", fiscal_year="2025-2026")

        data = build_alert(record, AlertPriority.HIGH, TODAY).to_dict()

        assert data["alert_type"] == "tax_deadline"
        assert data["reference_type"] == "tax_compliance"
        assert data["priority"] == "high"
        assert data["status"] == "pending"

    def test_tender_message(self):
        record = make_record(
            EntityType.TENDER, 1, tender_ref="T-2026-118", procuring_entity="LGED Dhaka"
        )
        title, message = render(record)
        assert title == "Tender submission deadline approaching"
        assert message == "T-2026-118 - LGED Dhaka submission due in 1 day"

    def test_missing_fields_render_as_dash(self):
        record = make_record(EntityType.ENLISTMENT, 40, authority="RAJUK", category=None)
        _, message = render(record)
        assert message == "RAJUK (-) for Acme Builders expires in 40 days"

    def test_unknown_firm(self):
        record = make_record(EntityType.LICENSE, 10, firm_name=None, license_type="vat")
        _, message = render(record)
        assert message == "VAT for Unknown firm expires in 10 days"

    def test_template_braces_in_values_are_not_evaluated(self):
        record = make_record(EntityType.LICENSE, 3, firm_name="{license_label}", license_type="tin")
        _, message = render(record)
        assert message == "TIN for {license_label} expires in 3 days"


class TestFormatting:

    def test_known_license_types(self):
        assert format_license_type("irc") == "IRC"
        assert format_license_type("fire") == "Fire License"

    def test_unknown_license_type_title_cased(self):
        assert format_license_type("import_permit") == "Import Permit"

    def test_time_phrases(self):
        assert describe_days_remaining(EntityType.LICENSE, 0) == "due today"
        assert describe_days_remaining(EntityType.LICENSE, -3) == "overdue by 3 days"
        assert describe_days_remaining(EntityType.TENDER, -2) == "overdue by 2 days"
        assert describe_days_remaining(EntityType.LICENSE, 1) == "expires in 1 day"
        assert describe_days_remaining(EntityType.TAX_COMPLIANCE, -1) == "overdue by 1 day"
        assert describe_days_remaining(EntityType.LOAN, 12) == "matures in 12 days"
        assert describe_days_remaining(EntityType.LOAN_PAYMENT, 0) == "due today"
