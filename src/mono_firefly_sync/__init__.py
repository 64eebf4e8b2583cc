"""Monobank to Firefly III transaction sync."""

__version__ = "0.1.0"
