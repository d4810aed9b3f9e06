"""Identifier and timestamp helpers shared by the alert and audit tables."""
import secrets
from datetime import datetime


def generate_id(prefix: str, nbytes: int = 6) -> str:
    """Prefixed random id, e.g. 'alert_3f9a0c1b2d4e'."""
    return f"{prefix}_{secrets.token_hex(nbytes)}"


def utcnow() -> datetime:
    """Naive UTC timestamp with microseconds, the form every DateTime column here stores."""
    return datetime.utcnow()
