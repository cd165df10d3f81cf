"""Dashboard statistics derived from a snapshot of tasting entries."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...config.loader import (
    DEFAULT_ANALYTICS,
    DEFAULT_PRIMARY_SHOP,
    DEFAULT_SECONDARY_SHOP,
)
from ..entries.models import Entry, utcnow

__all__ = [
    "ALL_PEOPLE",
    "ALL_SHOPS",
    "AnalyticsAggregator",
    "MOST_COMMON_SENTINEL",
    "filter_entries",
    "group_entries_by_date",
    "round_half_up",
]

ALL_SHOPS = "all"
ALL_PEOPLE = "all"
MOST_COMMON_SENTINEL: Tuple[str, int] = ("None", 0)
MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def round_half_up(value: float, places: int) -> float:
    """Round ``value`` to ``places`` decimals, halves away from zero."""

    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def filter_entries(
    entries: Iterable[Entry],
    shop: Optional[str],
    person: Optional[str] = None,
) -> List[Entry]:
    """Entries matching both filters; ``None`` or ``"all"`` disables a filter."""

    selected = list(entries)
    if shop and shop != ALL_SHOPS:
        selected = [entry for entry in selected if entry.shop == shop]
    if person and person != ALL_PEOPLE:
        selected = [entry for entry in selected if entry.person == person]
    return selected


def group_entries_by_date(
    entries: Iterable[Entry],
) -> List[Tuple[date, List[Entry]]]:
    """Group entries by tasting date, newest date first, keeping collection order within a day."""

    groups: Dict[date, List[Entry]] = defaultdict(list)
    for entry in entries:
        groups[entry.date].append(entry)
    return sorted(groups.items(), key=lambda item: item[0], reverse=True)


class AnalyticsAggregator:
    """Computes the dashboard statistics bundle.

    ``build_stats`` never mutates its input and does no I/O; for a given
    ``(entries, shop, person, now)`` it always returns the same bundle. Ties in
    every ranking go to whichever key appeared first in the collection.
    """

    def __init__(
        self,
        *,
        primary_shop: str = DEFAULT_PRIMARY_SHOP,
        secondary_shop: str = DEFAULT_SECONDARY_SHOP,
        top_flavour_limit: int = DEFAULT_ANALYTICS["top_flavour_limit"],
        recent_window_days: int = DEFAULT_ANALYTICS["recent_window_days"],
        trend_months: int = DEFAULT_ANALYTICS["trend_months"],
    ) -> None:
        self._primary_shop = primary_shop
        self._secondary_shop = secondary_shop
        self._top_flavour_limit = max(1, top_flavour_limit)
        self._recent_window_days = max(1, recent_window_days)
        self._trend_months = max(1, trend_months)

    @classmethod
    def from_settings(cls, settings: Any) -> "AnalyticsAggregator":
        return cls(
            primary_shop=settings.shops.primary,
            secondary_shop=settings.shops.secondary,
            top_flavour_limit=settings.analytics.top_flavour_limit,
            recent_window_days=settings.analytics.recent_window_days,
            trend_months=settings.analytics.trend_months,
        )

    def build_stats(
        self,
        entries: Sequence[Entry],
        *,
        shop: Optional[str] = None,
        person: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        now = now or utcnow()
        today = now.date()
        all_entries = list(entries)
        selected = filter_entries(all_entries, shop, person)
        total = len(selected)

        flavour_counts = self._count_flavours(selected)
        shop_counts = self._count_by(selected, lambda entry: entry.shop or "")
        person_counts = self._count_by(selected, lambda entry: entry.person or "")
        dates = self._date_range(selected)
        days_between = dates["days_between"]
        flavours_per_day = (
            round_half_up(total / days_between, 2) if days_between else 0.0
        )

        return {
            "totals": {
                "total_flavours": total,
                "unique_flavours": len(flavour_counts),
                "flavours_per_day": flavours_per_day,
                "today_count": sum(1 for entry in all_entries if entry.date == today),
            },
            "shops": {
                "breakdown": shop_counts,
                "most_popular": _leader(shop_counts),
                "variety": self._shop_variety(selected),
            },
            "people": {
                "breakdown": person_counts,
                "most_active": _leader(person_counts),
                "favourites": self._person_favourites(selected),
            },
            "visits": self._visit_stats(selected),
            "flavours": self._flavour_ranking(flavour_counts),
            "dates": dates,
            "cross_shop": self._cross_shop(all_entries),
            "timeline": self._monthly_trend(selected),
            "recency": self._recency(selected, today),
            "meta": {
                "shop_filter": shop or ALL_SHOPS,
                "person_filter": person or ALL_PEOPLE,
                "generated_at": now,
            },
        }

    # ------------------------------------------------------------------
    # Section helpers
    # ------------------------------------------------------------------
    def _count_by(self, entries: Iterable[Entry], key) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in entries:
            value = key(entry)
            counts[value] = counts.get(value, 0) + 1
        return counts

    def _count_flavours(self, entries: Iterable[Entry]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in entries:
            flavour = entry.flavor_key
            if flavour:
                counts[flavour] = counts.get(flavour, 0) + 1
        return counts

    def _shop_variety(self, entries: Iterable[Entry]) -> Dict[str, int]:
        seen: Dict[str, set[str]] = {}
        for entry in entries:
            flavours = seen.setdefault(entry.shop or "", set())
            if entry.flavor_key:
                flavours.add(entry.flavor_key)
        return {shop: len(flavours) for shop, flavours in seen.items()}

    def _person_favourites(
        self, entries: Iterable[Entry]
    ) -> Dict[str, Dict[str, Any]]:
        per_person: Dict[str, Dict[str, int]] = {}
        for entry in entries:
            counts = per_person.setdefault(entry.person or "", {})
            if entry.flavor_key:
                counts[entry.flavor_key] = counts.get(entry.flavor_key, 0) + 1
        favourites: Dict[str, Dict[str, Any]] = {}
        for person, counts in per_person.items():
            flavour = _leader(counts)
            if flavour is not None:
                favourites[person] = {"flavour": flavour, "count": counts[flavour]}
        return favourites

    def _visit_stats(self, entries: Iterable[Entry]) -> Dict[str, Any]:
        visits = self._count_by(
            entries, lambda entry: f"{entry.date.isoformat()}|{entry.person or ''}"
        )
        sizes = sorted(visits.values())
        if not sizes:
            return {
                "count": 0,
                "average": None,
                "maximum": None,
                "minimum": None,
                "median": None,
            }
        middle = len(sizes) // 2
        if len(sizes) % 2 == 0:
            median = (sizes[middle - 1] + sizes[middle]) / 2
        else:
            median = float(sizes[middle])
        return {
            "count": len(sizes),
            "average": round_half_up(sum(sizes) / len(sizes), 1),
            "maximum": sizes[-1],
            "minimum": sizes[0],
            "median": median,
        }

    def _flavour_ranking(self, flavour_counts: Mapping[str, int]) -> Dict[str, Any]:
        # sorted() is stable, so equal counts keep first-encountered order.
        ranked = sorted(flavour_counts.items(), key=lambda item: item[1], reverse=True)
        top = [
            {"flavour": flavour, "count": count}
            for flavour, count in ranked[: self._top_flavour_limit]
        ]
        most_common = ranked[0] if ranked else MOST_COMMON_SENTINEL
        return {"top": top, "most_common": most_common}

    def _date_range(self, entries: Sequence[Entry]) -> Dict[str, Any]:
        if not entries:
            return {"first_visit": None, "last_visit": None, "days_between": None}
        first = min(entry.date for entry in entries)
        last = max(entry.date for entry in entries)
        return {
            "first_visit": first,
            "last_visit": last,
            "days_between": max(1, (last - first).days),
        }

    def _cross_shop(self, entries: Iterable[Entry]) -> Dict[str, Any]:
        primary = 0
        secondary = 0
        for entry in entries:
            if entry.shop == self._primary_shop:
                primary += 1
            elif entry.shop == self._secondary_shop:
                secondary += 1
        ratio: Optional[float] = None
        label: Optional[str] = None
        if primary:
            ratio = round_half_up(secondary / primary, 2)
            label = f"1 : {ratio:.2f}"
        return {
            "primary": {"shop": self._primary_shop, "count": primary},
            "secondary": {"shop": self._secondary_shop, "count": secondary},
            "ratio": ratio,
            "ratio_label": label,
        }

    def _monthly_trend(self, entries: Iterable[Entry]) -> Dict[str, Any]:
        buckets: Dict[Tuple[int, int], int] = {}
        for entry in entries:
            key = (entry.date.year, entry.date.month)
            buckets[key] = buckets.get(key, 0) + 1
        monthly = [
            {"label": f"{MONTH_LABELS[month - 1]} {year}", "count": count}
            for (year, month), count in sorted(buckets.items())
        ]
        return {
            "monthly": monthly,
            "recent_months": monthly[-self._trend_months :],
        }

    def _recency(self, entries: Sequence[Entry], today: date) -> Dict[str, Any]:
        window_start = today - timedelta(days=self._recent_window_days - 1)
        count = sum(1 for entry in entries if window_start <= entry.date <= today)
        percentage = round_half_up(count / len(entries) * 100, 1) if entries else 0.0
        return {
            "window_days": self._recent_window_days,
            "count": count,
            "percentage": percentage,
        }


def _leader(counts: Mapping[str, int]) -> Optional[str]:
    """Key with the highest count; the earliest inserted key wins ties."""

    leader: Optional[str] = None
    best = 0
    for key, count in counts.items():
        if count > best:
            leader, best = key, count
    return leader
