"""Gelato Base: ice-cream tasting log with offline-tolerant sync and analytics."""

__version__ = "0.1.0"
