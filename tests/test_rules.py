"""Tests for the threshold registry."""

import pytest

from compliance_alerts.alerts.models import EntityType, AlertPriority
from compliance_alerts.alerts.rules import ALERT_RULES, ThresholdRegistry


@pytest.fixture
def registry():
    return ThresholdRegistry.default()


class TestDefaultTiers:

    def test_every_entity_type_has_rules(self, registry):
        assert set(registry.entity_types()) == set(EntityType)

    def test_tiers_sorted_and_distinct(self, registry):
        for entity_type in EntityType:
            days = [tier.days_before_due for tier in registry.tiers_for(entity_type)]
            assert days == sorted(days)
            assert len(days) == len(set(days))

    def test_license_defaults(self, registry):
        tiers = [(t.days_before_due, t.priority) for t in registry.tiers_for(EntityType.LICENSE)]
        assert tiers == [
            (7, AlertPriority.HIGH),
            (30, AlertPriority.MEDIUM),
            (60, AlertPriority.LOW),
        ]

    def test_widest_window(self, registry):
        assert registry.widest_window(EntityType.ENLISTMENT) == 90
        assert registry.widest_window(EntityType.TENDER) == 7


class TestPriorityFor:

    def test_boundary_matches_tier_priority(self, registry):
        """A record exactly at a tier's days gets that tier's priority."""
        for entity_type in EntityType:
            for tier in registry.tiers_for(entity_type):
                assert registry.priority_for(entity_type, tier.days_before_due) == tier.priority

    def test_overdue_gets_tightest_tier(self, registry):
        for entity_type in EntityType:
            tightest = registry.tiers_for(entity_type)[0]
            assert registry.priority_for(entity_type, -1) == tightest.priority
            assert registry.priority_for(entity_type, -400) == tightest.priority

    def test_outside_every_window(self, registry):
        for entity_type in EntityType:
            widest = registry.widest_window(entity_type)
            assert registry.priority_for(entity_type, widest + 1) is None

    @pytest.mark.parametrize("days,expected", [
        (0, AlertPriority.HIGH),
        (6, AlertPriority.HIGH),
        (8, AlertPriority.MEDIUM),
        (31, AlertPriority.LOW),
        (61, None),
    ])
    def test_license_windows(self, registry, days, expected):
        assert registry.priority_for(EntityType.LICENSE, days) == expected

    def test_enlistment_between_medium_and_low(self, registry):
        assert registry.priority_for(EntityType.ENLISTMENT, 65) == AlertPriority.LOW
        assert registry.priority_for(EntityType.ENLISTMENT, 58) == AlertPriority.MEDIUM


class TestOverrides:

    def test_override_replaces_one_type_only(self):
        registry = ThresholdRegistry.from_settings({"license": {14: "high", 45: "low"}})

        assert registry.widest_window(EntityType.LICENSE) == 45
        assert registry.priority_for(EntityType.LICENSE, 20) == AlertPriority.LOW
        tax_defaults = ALERT_RULES[EntityType.TAX_COMPLIANCE]["default_tiers"]
        assert registry.widest_window(EntityType.TAX_COMPLIANCE) == max(tax_defaults)

    def test_string_day_keys_are_accepted(self):
        registry = ThresholdRegistry.from_settings({"tender": {"1": "high", "3": "medium"}})
        assert registry.priority_for(EntityType.TENDER, 3) == AlertPriority.MEDIUM

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValueError):
            ThresholdRegistry.from_settings({"license": {7: "urgent"}})

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            ThresholdRegistry.from_settings({"license": {-1: "high"}})

    def test_empty_tiers_rejected(self):
        with pytest.raises(ValueError):
            ThresholdRegistry.from_settings({"license": {}})

    def test_unknown_entity_type_rejected(self):
        with pytest.raises(ValueError):
            ThresholdRegistry.from_settings({"vehicle": {7: "high"}})

    def test_to_dict(self):
        data = ThresholdRegistry.default().to_dict()
        assert data["tax_compliance"][0] == {"days_before_due": 3, "priority": "high"}
