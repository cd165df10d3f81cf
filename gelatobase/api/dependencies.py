"""Shared API dependencies."""

from __future__ import annotations

from functools import lru_cache

from ..config import Settings, load_settings
from ..domain.dashboard import AnalyticsAggregator
from ..domain.entries import AdminGate, EntryStoreGateway, build_entry_store_gateway

__all__ = [
    "get_admin_gate",
    "get_analytics_aggregator",
    "get_entry_gateway",
    "get_settings",
]


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings."""

    return load_settings()


@lru_cache()
def _entry_gateway_singleton() -> EntryStoreGateway:
    return build_entry_store_gateway()


def get_entry_gateway() -> EntryStoreGateway:
    """Return the process-wide entry store gateway instance."""

    return _entry_gateway_singleton()


def get_admin_gate() -> AdminGate:
    return AdminGate(get_settings().admin_password)


def get_analytics_aggregator() -> AnalyticsAggregator:
    return AnalyticsAggregator.from_settings(get_settings())
