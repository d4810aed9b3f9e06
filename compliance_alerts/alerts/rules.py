"""
Alert Rules

Default reminder windows for each monitored entity type and the threshold
registry that maps days-remaining onto a priority tier.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .models import EntityType, AlertType, AlertPriority


@dataclass(frozen=True)
class ThresholdTier:
    """Alert with `priority` once a deadline is at most `days_before_due` days away."""
    entity_type: EntityType
    days_before_due: int
    priority: AlertPriority


# Default configuration for each monitored entity type
ALERT_RULES = {
    EntityType.LICENSE: {
        "name": "License Expiry",
        "description": "Trade, tax and regulatory licenses approaching expiry",
        "alert_type": AlertType.LICENSE_EXPIRY,
        "default_tiers": {7: AlertPriority.HIGH, 30: AlertPriority.MEDIUM, 60: AlertPriority.LOW},
        "data_source": "licenses",
    },

    EntityType.ENLISTMENT: {
        "name": "Enlistment Expiry",
        "description": "Contractor enlistments with procuring authorities due for renewal",
        "alert_type": AlertType.ENLISTMENT_EXPIRY,
        "default_tiers": {30: AlertPriority.HIGH, 60: AlertPriority.MEDIUM, 90: AlertPriority.LOW},
        "data_source": "enlistments",
    },

    EntityType.BANK_GUARANTEE: {
        "name": "Bank Guarantee Expiry",
        "description": "Tender security and performance guarantees about to lapse",
        "alert_type": AlertType.BG_EXPIRY,
        "default_tiers": {7: AlertPriority.HIGH, 15: AlertPriority.MEDIUM, 30: AlertPriority.LOW},
        "data_source": "bank_guarantees",
    },

    EntityType.TAX_COMPLIANCE: {
        "name": "Tax Compliance Deadline",
        "description": "VAT, withholding and return filings due",
        "alert_type": AlertType.TAX_DEADLINE,
        "default_tiers": {3: AlertPriority.HIGH, 7: AlertPriority.MEDIUM, 15: AlertPriority.LOW},
        "data_source": "tax_compliance",
    },

    EntityType.TENDER: {
        "name": "Tender Submission Deadline",
        "description": "Tenders still being worked on whose submission date is near",
        "alert_type": AlertType.TENDER_DEADLINE,
        "default_tiers": {2: AlertPriority.HIGH, 5: AlertPriority.MEDIUM, 7: AlertPriority.LOW},
        "data_source": "tenders",
    },

    EntityType.LOAN: {
        "name": "Loan Maturity",
        "description": "Loans reaching maturity with an outstanding balance",
        "alert_type": AlertType.LOAN_MATURITY,
        "default_tiers": {7: AlertPriority.HIGH, 15: AlertPriority.MEDIUM, 30: AlertPriority.LOW},
        "data_source": "loans",
    },

    EntityType.LOAN_PAYMENT: {
        "name": "Loan Installment",
        "description": "Scheduled loan installments not yet paid",
        "alert_type": AlertType.LOAN_INSTALLMENT,
        "default_tiers": {3: AlertPriority.HIGH, 7: AlertPriority.MEDIUM, 15: AlertPriority.LOW},
        "data_source": "loan_payments",
    },
}


def _build_tiers(entity_type: EntityType, tiers: Mapping[int, object]) -> Tuple[ThresholdTier, ...]:
    """Validate a {days: priority} mapping and return it sorted ascending by days."""
    if not tiers:
        raise ValueError(f"No threshold tiers configured for {entity_type.value}")

    built = []
    seen = set()
    for days, priority in tiers.items():
        days = int(days)
        if days < 0:
            raise ValueError(f"Negative threshold {days} for {entity_type.value}")
        if days in seen:
            raise ValueError(f"Duplicate threshold {days} for {entity_type.value}")
        seen.add(days)
        built.append(ThresholdTier(entity_type, days, AlertPriority(priority)))

    return tuple(sorted(built, key=lambda tier: tier.days_before_due))


class ThresholdRegistry:
    """
    Lookup of reminder tiers per entity type.

    Tiers are kept sorted ascending by days_before_due. The tier that applies
    to a record is the first one whose window still covers its days
    remaining, so the tightest deadline crossed wins. Overdue records
    always land in the tightest tier.

    Usage:
        registry = ThresholdRegistry.from_settings(settings.ALERT_THRESHOLD_OVERRIDES)
        registry.priority_for(EntityType.LICENSE, 6)  # AlertPriority.HIGH
    """

    def __init__(self, tiers: Mapping[EntityType, Mapping[int, object]]):
        self._tiers: Dict[EntityType, Tuple[ThresholdTier, ...]] = {
            EntityType(entity_type): _build_tiers(EntityType(entity_type), type_tiers)
            for entity_type, type_tiers in tiers.items()
        }

    @classmethod
    def default(cls) -> "ThresholdRegistry":
        return cls({entity_type: rule["default_tiers"] for entity_type, rule in ALERT_RULES.items()})

    @classmethod
    def from_settings(cls, overrides: Optional[Mapping[str, Mapping[int, object]]] = None) -> "ThresholdRegistry":
        """Default tiers with any per entity type overrides applied."""
        tiers = {entity_type: rule["default_tiers"] for entity_type, rule in ALERT_RULES.items()}
        for entity_type, type_tiers in (overrides or {}).items():
            tiers[EntityType(entity_type)] = type_tiers
        return cls(tiers)

    def tiers_for(self, entity_type: EntityType) -> Tuple[ThresholdTier, ...]:
        return self._tiers.get(EntityType(entity_type), ())

    def widest_window(self, entity_type: EntityType) -> Optional[int]:
        """Largest days_before_due for the type, or None if it is not monitored."""
        tiers = self.tiers_for(entity_type)
        if not tiers:
            return None
        return tiers[-1].days_before_due

    def priority_for(self, entity_type: EntityType, days_remaining: int) -> Optional[AlertPriority]:
        """Priority of the tier covering `days_remaining`, or None if outside every window."""
        for tier in self.tiers_for(entity_type):
            if days_remaining <= tier.days_before_due:
                return tier.priority
        return None

    def entity_types(self) -> List[EntityType]:
        return list(self._tiers.keys())

    def to_dict(self) -> Dict[str, List[dict]]:
        return {
            entity_type.value: [
                {"days_before_due": tier.days_before_due, "priority": tier.priority.value}
                for tier in tiers
            ]
            for entity_type, tiers in self._tiers.items()
        }
