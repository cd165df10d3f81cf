"""Entry store gateway implementations backing the entries API."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Engine

from ...infra.logging import get_logger
from .errors import NotFoundError, ValidationError
from .models import Entry, parse_entry_date, parse_timestamp, utcnow

__all__ = [
    "ENTRIES_TABLE",
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "SqlEntryStoreGateway",
    "build_entry_store_gateway",
]

logger = get_logger(__name__)

METADATA = MetaData()

ENTRIES_TABLE = Table(
    "entries",
    METADATA,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("shop", Text, nullable=False),
    Column("flavor", Text, nullable=False),
    Column("date", Date, nullable=False),
    Column("notes", Text, nullable=False, default=""),
    Column("person", Text, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
)

REQUIRED_FIELDS_MESSAGE = "Missing required fields"


class EntryStoreGateway(Protocol):  # pragma: no cover
    """Persistence operations the entries API relies on."""

    def list_entries(self) -> List[Entry]: ...

    def create_entry(
        self,
        *,
        shop: Optional[str],
        flavor: Optional[str],
        date: Optional[Any],
        notes: Optional[str] = None,
        person: Optional[str],
    ) -> Entry: ...

    def delete_entry(self, entry_id: str) -> str: ...


class InMemoryEntryStoreGateway(EntryStoreGateway):
    """Simple in-memory store used for local development and tests."""

    def __init__(self) -> None:
        self._entries: Dict[str, Entry] = {}
        self._next_id = 1

    def list_entries(self) -> List[Entry]:
        return sorted(
            self._entries.values(),
            key=lambda entry: (entry.timestamp, int(entry.id)),
            reverse=True,
        )

    def create_entry(
        self,
        *,
        shop: Optional[str],
        flavor: Optional[str],
        date: Optional[Any],
        notes: Optional[str] = None,
        person: Optional[str],
    ) -> Entry:
        values = _validated_values(
            shop=shop, flavor=flavor, entry_date=date, notes=notes, person=person
        )
        entry = Entry(id=str(self._next_id), timestamp=utcnow(), **values)
        self._next_id += 1
        self._entries[entry.id] = entry
        return entry

    def delete_entry(self, entry_id: str) -> str:
        key = str(entry_id)
        if key not in self._entries:
            raise NotFoundError("Entry not found", details={"id": key})
        del self._entries[key]
        return key


class SqlEntryStoreGateway(EntryStoreGateway):
    """SQLAlchemy-backed adapter persisting entries to the configured database."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        table: Optional[Table] = None,
        ensure_schema: bool = True,
    ) -> None:
        if engine is None:
            from ...infra.db import get_engine

            engine = get_engine()
        self._engine = engine
        self._entries = table if table is not None else ENTRIES_TABLE
        if ensure_schema:
            self._entries.metadata.create_all(self._engine, tables=[self._entries])

    def list_entries(self) -> List[Entry]:
        stmt = select(self._entries).order_by(
            self._entries.c.timestamp.desc(), self._entries.c.id.desc()
        )
        with self._engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_entry(row) for row in rows]

    def create_entry(
        self,
        *,
        shop: Optional[str],
        flavor: Optional[str],
        date: Optional[Any],
        notes: Optional[str] = None,
        person: Optional[str],
    ) -> Entry:
        values = _validated_values(
            shop=shop, flavor=flavor, entry_date=date, notes=notes, person=person
        )
        stmt = (
            insert(self._entries)
            .values(timestamp=utcnow(), **values)
            .returning(self._entries)
        )
        with self._engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:  # pragma: no cover - defensive
            raise RuntimeError("failed to insert entry")
        return _row_to_entry(row)

    def delete_entry(self, entry_id: str) -> str:
        key = str(entry_id).strip()
        if not key.isdigit():
            raise NotFoundError("Entry not found", details={"id": key})
        stmt = (
            delete(self._entries)
            .where(self._entries.c.id == int(key))
            .returning(self._entries.c.id)
        )
        with self._engine.begin() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            raise NotFoundError("Entry not found", details={"id": key})
        return str(row[0])


def build_entry_store_gateway(
    *,
    prefer_sql: bool = True,
    fallback_to_memory: bool = False,
) -> EntryStoreGateway:
    """Factory that returns the desired entry store implementation."""

    if prefer_sql:
        try:
            return SqlEntryStoreGateway()
        except Exception:
            if not fallback_to_memory:
                raise
            logger.warning(
                "sql_entry_store_unavailable_falling_back",
                exc_info=True,
            )
    return InMemoryEntryStoreGateway()


def _validated_values(
    *,
    shop: Optional[str],
    flavor: Optional[str],
    entry_date: Optional[Any],
    notes: Optional[str],
    person: Optional[str],
) -> Dict[str, Any]:
    missing = [
        name
        for name, value in (
            ("shop", shop),
            ("flavor", flavor),
            ("date", entry_date),
            ("person", person),
        )
        if value is None or not str(value).strip()
    ]
    if missing:
        raise ValidationError(REQUIRED_FIELDS_MESSAGE, details={"missing": missing})
    try:
        parsed_date: date = parse_entry_date(entry_date)
    except ValueError as exc:
        raise ValidationError(
            "date must be an ISO calendar date", details={"date": str(entry_date)}
        ) from exc
    return {
        "shop": str(shop),
        "flavor": str(flavor).strip(),
        "date": parsed_date,
        "notes": notes or "",
        "person": str(person),
    }


def _row_to_entry(row: Mapping[str, Any]) -> Entry:
    return Entry(
        id=str(row["id"]),
        shop=row["shop"] or "",
        flavor=row["flavor"] or "",
        date=parse_entry_date(row["date"]),
        person=row["person"] or "",
        notes=row.get("notes") or "",
        timestamp=parse_timestamp(row["timestamp"]),
    )
