# Alerts Module
# Scans monitored business records for approaching deadlines and keeps
# one deduplicated, priority-tiered reminder per deadline.
#
# Components:
# - rules.py: Threshold tiers per entity type (ThresholdRegistry)
# - scanners.py: One scanner per monitored table
# - templates.py: Title/message rendering (build_alert)
# - store.py: AlertStore persistence boundary
# - dedup.py: Create/update/skip decisions per record
# - lifecycle.py: Acknowledge/dismiss/complete and retention cleanup
# - engine.py: One generation pass over all scanners
# - scheduler.py: Single-flight orchestrator and APScheduler jobs

from .models import (
    Alert,
    AlertPriority,
    AlertStatus,
    AlertType,
    EntityType,
)
from .exceptions import (
    AlertEngineError,
    AlertNotFound,
    EngineBusy,
    InvalidStateTransition,
    ScannerFailure,
    StoreFailure,
)
from .rules import ALERT_RULES, ThresholdRegistry, ThresholdTier
from .scanners import EntityScanner, TrackableRecord, SCANNER_REGISTRY, get_scanners
from .templates import AlertPayload, build_alert
from .store import AlertStore
from .dedup import Deduplicator, DedupAction, DedupDecision
from .lifecycle import LifecycleManager, ALLOWED_TRANSITIONS, can_transition
from .engine import AlertEngine, GenerationSummary
from .scheduler import AlertScheduler, alert_scheduler, setup_apscheduler

__all__ = [
    # Models
    "Alert",
    "AlertPriority",
    "AlertStatus",
    "AlertType",
    "EntityType",
    # Errors
    "AlertEngineError",
    "AlertNotFound",
    "EngineBusy",
    "InvalidStateTransition",
    "ScannerFailure",
    "StoreFailure",
    # Rules
    "ALERT_RULES",
    "ThresholdRegistry",
    "ThresholdTier",
    # Scanners
    "EntityScanner",
    "TrackableRecord",
    "SCANNER_REGISTRY",
    "get_scanners",
    # Builder
    "AlertPayload",
    "build_alert",
    # Store / dedup / lifecycle
    "AlertStore",
    "Deduplicator",
    "DedupAction",
    "DedupDecision",
    "LifecycleManager",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    # Engine / scheduler
    "AlertEngine",
    "GenerationSummary",
    "AlertScheduler",
    "alert_scheduler",
    "setup_apscheduler",
]
