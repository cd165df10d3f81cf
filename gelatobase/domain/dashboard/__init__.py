"""Dashboard analytics package."""

from .analytics import (
    ALL_PEOPLE,
    ALL_SHOPS,
    MOST_COMMON_SENTINEL,
    AnalyticsAggregator,
    filter_entries,
    group_entries_by_date,
    round_half_up,
)

__all__ = [
    "ALL_PEOPLE",
    "ALL_SHOPS",
    "AnalyticsAggregator",
    "MOST_COMMON_SENTINEL",
    "filter_entries",
    "group_entries_by_date",
    "round_half_up",
]
