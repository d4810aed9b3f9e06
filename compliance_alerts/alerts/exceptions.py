"""Errors raised by the alert engine."""
from typing import Optional


class AlertEngineError(Exception):
    """Base class for alert engine errors."""


class ScannerFailure(AlertEngineError):
    """Fetching or converting records for one entity type failed."""

    def __init__(self, entity_type: str, cause: Exception):
        self.entity_type = entity_type
        self.cause = cause
        super().__init__(f"{entity_type} scan failed: {cause}")


class StoreFailure(AlertEngineError):
    """A read or write against the alert store failed."""

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Alert store {operation} failed{detail}")


class AlertNotFound(AlertEngineError):
    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class InvalidStateTransition(AlertEngineError):
    """A lifecycle action was requested from a status that does not allow it."""

    def __init__(self, alert_id: str, current_status: str, action: str):
        self.alert_id = alert_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} alert {alert_id} in status '{current_status}'")


class EngineBusy(AlertEngineError):
    """A generation run is already in progress."""

    def __init__(self):
        super().__init__("Alert generation already running, try again later")
