"""Built-in demonstration entries shown when neither the API nor the cache is available."""

from __future__ import annotations

from datetime import date, datetime
from typing import Tuple

from ..entries.models import Entry, utcnow

__all__ = ["build_demo_entries"]


def build_demo_entries(timestamp: datetime | None = None) -> Tuple[Entry, ...]:
    """Return the static demo dataset stamped with ``timestamp`` (defaults to now)."""

    stamp = timestamp or utcnow()
    return (
        Entry(
            id="demo-1",
            shop="Joelato",
            flavor="Chocolate",
            date=date(2024, 1, 15),
            person="Demo",
            notes="Sample entry",
            timestamp=stamp,
        ),
        Entry(
            id="demo-2",
            shop="Mary's Milk Bar",
            flavor="Vanilla",
            date=date(2024, 1, 14),
            person="Demo",
            notes="Another sample",
            timestamp=stamp,
        ),
    )
