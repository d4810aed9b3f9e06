"""Compliance alert and reminder engine."""

__version__ = "0.1.0"
