"""Best-effort local mirror of the canonical entry collection.

The cache is a single named slot holding the whole collection as JSON. It is
overwritten wholesale on every committed mutation and read only when the
remote store cannot be reached at load time. Failures are logged and never
raised: a broken mirror must not break the session.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from ..domain.entries.models import Entry, normalize_entry_payload
from .logging import get_logger

__all__ = [
    "CACHE_SLOT",
    "EntryCache",
    "InMemoryEntryCache",
    "JsonFileEntryCache",
    "decode_entries",
    "encode_entries",
]

logger = get_logger(__name__)

CACHE_SLOT = "ice-cream-entries"


class EntryCache(Protocol):  # pragma: no cover - interface only
    def read(self) -> Optional[List[Entry]]: ...

    def write(self, entries: Iterable[Entry]) -> None: ...


def encode_entries(entries: Iterable[Entry]) -> str:
    return json.dumps([entry.to_payload() for entry in entries])


def decode_entries(raw: str) -> List[Entry]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("cached slot must hold a JSON array")
    return [Entry.from_payload(normalize_entry_payload(item)) for item in data]


class InMemoryEntryCache(EntryCache):
    """Cache slot kept in process memory; used by tests and throwaway sessions."""

    def __init__(self, raw: Optional[str] = None) -> None:
        self.raw = raw
        self.writes = 0

    def read(self) -> Optional[List[Entry]]:
        if self.raw is None:
            return None
        try:
            return decode_entries(self.raw)
        except (TypeError, ValueError) as exc:
            logger.warning("local_cache_corrupt", extra={"error": str(exc)})
            return None

    def write(self, entries: Iterable[Entry]) -> None:
        self.raw = encode_entries(entries)
        self.writes += 1


class JsonFileEntryCache(EntryCache):
    """Cache slot persisted as ``<directory>/ice-cream-entries.json``."""

    def __init__(self, directory: str | Path, *, slot: str = CACHE_SLOT) -> None:
        self._path = Path(directory).expanduser() / f"{slot}.json"

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[List[Entry]]:
        if not self._path.exists():
            return None
        try:
            return decode_entries(self._path.read_text(encoding="utf-8"))
        except (OSError, TypeError, ValueError) as exc:
            logger.warning(
                "local_cache_unreadable",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return None

    def write(self, entries: Iterable[Entry]) -> None:
        payload = encode_entries(entries)
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
            logger.warning(
                "local_cache_write_failed",
                extra={"path": str(self._path), "error": str(exc)},
            )
