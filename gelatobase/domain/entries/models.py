"""Tasting entry data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

__all__ = [
    "Entry",
    "EntryDraft",
    "LEGACY_FLAVOR_KEY",
    "normalize_entry_payload",
    "parse_entry_date",
    "parse_timestamp",
    "format_timestamp",
    "utcnow",
]

LEGACY_FLAVOR_KEY = "flavour"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Return timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def parse_entry_date(value: Any) -> date:
    """Coerce a wire or database value into a calendar date.

    Accepts ``date``/``datetime`` objects and ISO strings, including the
    ``2024-01-15T00:00:00.000Z`` shape some Postgres drivers emit for DATE
    columns.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("date is required")
    return date.fromisoformat(text[:10])


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            return _EPOCH
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render ``YYYY-MM-DDTHH:MM:SS.mmmZ`` like the store's TO_CHAR output."""

    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def normalize_entry_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the legacy ``flavour`` key onto the canonical ``flavor`` key."""

    normalized = dict(payload)
    legacy = normalized.pop(LEGACY_FLAVOR_KEY, None)
    if normalized.get("flavor") in (None, "") and legacy is not None:
        normalized["flavor"] = legacy
    return normalized


@dataclass(frozen=True)
class Entry:
    """A single flavour-tasting record."""

    id: str
    shop: str
    flavor: str
    date: date
    person: str
    notes: str = ""
    timestamp: datetime = field(default=_EPOCH)

    @property
    def flavor_key(self) -> str:
        """Case-folded, trimmed flavour used for aggregation."""

        return (self.flavor or "").strip().casefold()

    @property
    def is_local(self) -> bool:
        return self.id.startswith("local-")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shop": self.shop,
            "flavor": self.flavor,
            "date": self.date.isoformat(),
            "notes": self.notes,
            "person": self.person,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Entry":
        """Build an Entry from a canonical payload (``flavor`` key)."""

        raw_id = payload.get("id")
        if raw_id is None or str(raw_id).strip() == "":
            raise ValueError("entry payload is missing an id")
        return cls(
            id=str(raw_id),
            shop=str(payload.get("shop") or ""),
            flavor=str(payload.get("flavor") or ""),
            date=parse_entry_date(payload.get("date")),
            person=str(payload.get("person") or ""),
            notes=str(payload.get("notes") or ""),
            timestamp=parse_timestamp(payload.get("timestamp")),
        )


@dataclass(frozen=True)
class EntryDraft:
    """A multi-flavour form submission awaiting persistence."""

    shop: str
    person: str
    date: Optional[date]
    flavors: Sequence[str] = ()
    notes: Optional[str] = None

    def candidate_flavors(self) -> list[str]:
        """Trimmed, non-blank flavours in the order they were typed."""

        return [flavor.strip() for flavor in self.flavors if (flavor or "").strip()]

    def missing_fields(self) -> list[str]:
        missing: list[str] = []
        if not (self.shop or "").strip():
            missing.append("shop")
        if not (self.person or "").strip():
            missing.append("person")
        if self.date is None:
            missing.append("date")
        if not self.candidate_flavors():
            missing.append("flavors")
        return missing
