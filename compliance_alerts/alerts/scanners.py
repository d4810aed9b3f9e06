"""
Entity Scanners

One scanner per monitored entity type. Each scanner selects the records
that are still open and whose due date falls inside the widest reminder
window for its type (overdue records included), and converts each row
into a TrackableRecord with its days remaining.

Scanners only read. They raise on any query or mapping error; the engine
decides how failures are isolated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import String, and_, cast, select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_alerts.records.models import (
    Firm,
    License,
    Enlistment,
    BankGuarantee,
    TaxCompliance,
    Tender,
    Loan,
    LoanPayment,
)
from .models import EntityType


@dataclass
class TrackableRecord:
    """A monitored business record with a due date, as seen by the engine."""
    entity_type: EntityType
    record_id: int
    firm_id: Optional[int]
    due_date: date
    days_remaining: int
    status: Optional[str] = None
    firm_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def days_until(due_date: date, today: date) -> int:
    """Whole calendar days from today to the due date; negative once overdue."""
    if isinstance(due_date, datetime):
        due_date = due_date.date()
    return (due_date - today).days


def has_due_date(column):
    """Rows with a usable date; blank strings stored in TEXT date columns are skipped."""
    return and_(column.is_not(None), cast(column, String) != "")


class EntityScanner(ABC):
    """Base scanner over one monitored table."""

    entity_type: EntityType
    model: Any = None
    excluded_statuses: Tuple[str, ...] = ()

    @property
    @abstractmethod
    def due_column(self):
        """Column holding the expiry or deadline date."""

    @property
    def firm_column(self):
        return self.model.firm_id

    def build_query(self, cutoff: date):
        """Open records due on or before `cutoff`, with the owning firm's name."""
        model = self.model
        query = (
            select(model, Firm.name)
            .outerjoin(Firm, Firm.id == self.firm_column)
            .where(has_due_date(self.due_column))
            .where(self.due_column <= cutoff)
            .order_by(self.due_column)
        )
        if self.excluded_statuses:
            query = query.where(
                or_(model.status.is_(None), model.status.notin_(self.excluded_statuses))
            )
        return query

    async def fetch_candidates(
        self, db: AsyncSession, today: date, window_days: int
    ) -> List[TrackableRecord]:
        """Return every open record inside the reminder window."""
        cutoff = today + timedelta(days=window_days)
        result = await db.execute(self.build_query(cutoff))
        return [self.to_trackable_record(row, today) for row in result.all()]

    @abstractmethod
    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        """Convert one result row."""

    def _record(self, obj, due_date: date, today: date, firm_id, firm_name, **details) -> TrackableRecord:
        return TrackableRecord(
            entity_type=self.entity_type,
            record_id=obj.id,
            firm_id=firm_id,
            due_date=due_date,
            days_remaining=days_until(due_date, today),
            status=obj.status,
            firm_name=firm_name,
            details=details,
        )


class LicenseScanner(EntityScanner):
    entity_type = EntityType.LICENSE
    model = License
    excluded_statuses = ("expired", "under_renewal", "cancelled")

    @property
    def due_column(self):
        return License.expiry_date

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        lic, firm_name = row
        return self._record(
            lic, lic.expiry_date, today, lic.firm_id, firm_name,
            license_type=lic.license_type,
            license_number=lic.license_number,
        )


class EnlistmentScanner(EntityScanner):
    entity_type = EntityType.ENLISTMENT
    model = Enlistment
    excluded_statuses = ("expired", "renewed", "cancelled")

    @property
    def due_column(self):
        return Enlistment.expiry_date

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        enlistment, firm_name = row
        return self._record(
            enlistment, enlistment.expiry_date, today, enlistment.firm_id, firm_name,
            authority=enlistment.authority,
            category=enlistment.category,
        )


class BankGuaranteeScanner(EntityScanner):
    entity_type = EntityType.BANK_GUARANTEE
    model = BankGuarantee
    excluded_statuses = ("expired", "claimed", "released", "extended")

    @property
    def due_column(self):
        return BankGuarantee.expiry_date

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        bg, firm_name = row
        return self._record(
            bg, bg.expiry_date, today, bg.firm_id, firm_name,
            bg_type=bg.bg_type,
            bg_number=bg.bg_number,
            bank_name=bg.bank_name,
            amount=bg.amount,
        )


class TaxComplianceScanner(EntityScanner):
    entity_type = EntityType.TAX_COMPLIANCE
    model = TaxCompliance
    excluded_statuses = ("submitted", "paid")

    @property
    def due_column(self):
        return TaxCompliance.due_date

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        tax, firm_name = row
        return self._record(
            tax, tax.due_date, today, tax.firm_id, firm_name,
            compliance_type=tax.compliance_type,
            fiscal_year=tax.fiscal_year,
            month=tax.month,
        )


class TenderScanner(EntityScanner):
    entity_type = EntityType.TENDER
    model = Tender
    excluded_statuses = ("submitted", "opened", "won", "lost", "cancelled")

    @property
    def due_column(self):
        return Tender.last_submission

    @property
    def firm_column(self):
        return Tender.assigned_firm_id

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        tender, firm_name = row
        return self._record(
            tender, tender.last_submission, today, tender.assigned_firm_id, firm_name,
            tender_ref=tender.tender_id,
            procuring_entity=tender.procuring_entity,
        )


class LoanScanner(EntityScanner):
    entity_type = EntityType.LOAN
    model = Loan
    excluded_statuses = ("closed",)

    @property
    def due_column(self):
        return Loan.maturity_date

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        loan, firm_name = row
        return self._record(
            loan, loan.maturity_date, today, loan.firm_id, firm_name,
            loan_type=loan.loan_type,
            bank_name=loan.bank_name,
            outstanding_amount=loan.outstanding_amount,
        )


class LoanPaymentScanner(EntityScanner):
    """Installments belong to a loan; the firm is reached through it."""

    entity_type = EntityType.LOAN_PAYMENT
    model = LoanPayment
    excluded_statuses = ("paid",)

    @property
    def due_column(self):
        return LoanPayment.due_date

    def build_query(self, cutoff: date):
        query = (
            select(LoanPayment, Loan, Firm.name)
            .join(Loan, Loan.id == LoanPayment.loan_id)
            .outerjoin(Firm, Firm.id == Loan.firm_id)
            .where(has_due_date(LoanPayment.due_date))
            .where(LoanPayment.due_date <= cutoff)
            .where(or_(LoanPayment.status.is_(None), LoanPayment.status.notin_(self.excluded_statuses)))
            .where(or_(Loan.status.is_(None), Loan.status != "closed"))
            .order_by(LoanPayment.due_date)
        )
        return query

    def to_trackable_record(self, row, today: date) -> TrackableRecord:
        payment, loan, firm_name = row
        return self._record(
            payment, payment.due_date, today, loan.firm_id, firm_name,
            loan_type=loan.loan_type,
            bank_name=loan.bank_name,
            amount=payment.total_amount,
        )


SCANNER_REGISTRY: Dict[EntityType, EntityScanner] = {
    scanner.entity_type: scanner
    for scanner in (
        LicenseScanner(),
        EnlistmentScanner(),
        BankGuaranteeScanner(),
        TaxComplianceScanner(),
        TenderScanner(),
        LoanScanner(),
        LoanPaymentScanner(),
    )
}


def get_scanners(entity_types: Optional[Iterable[EntityType]] = None) -> List[EntityScanner]:
    """Registered scanners, optionally limited to the given entity types."""
    if entity_types is None:
        return list(SCANNER_REGISTRY.values())
    return [SCANNER_REGISTRY[EntityType(t)] for t in entity_types if EntityType(t) in SCANNER_REGISTRY]
