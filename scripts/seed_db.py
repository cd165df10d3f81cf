"""Seed script for the entries table.

Creates a handful of sample tastings so local UIs and API calls have data
to read without anyone logging flavours first.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List

from sqlalchemy import create_engine

from gelatobase.config import load_settings
from gelatobase.domain.entries import SqlEntryStoreGateway
from gelatobase.infra.db import engine_options


def build_seed_entries(today: date) -> List[dict[str, object]]:
    """Return static seed tastings dated relative to ``today``."""

    yesterday = today - timedelta(days=1)
    last_week = today - timedelta(days=8)
    return [
        {"shop": "Joelato", "flavor": "Pistachio", "date": last_week, "person": "Ana"},
        {"shop": "Joelato", "flavor": "Dark Chocolate", "date": last_week, "person": "Ana"},
        {
            "shop": "Mary's Milk Bar",
            "flavor": "Salted Caramel",
            "date": yesterday,
            "person": "Ben",
            "notes": "Seeded via scripts/seed_db.py",
        },
        {"shop": "Mary's Milk Bar", "flavor": "pistachio", "date": yesterday, "person": "Ben"},
        {"shop": "Joelato", "flavor": "Mango Sorbet", "date": today, "person": "Ana"},
    ]


def seed_entries() -> int:
    settings = load_settings()
    engine = create_engine(
        settings.database_url, future=True, **engine_options(settings.database_url)
    )
    gateway = SqlEntryStoreGateway(engine)
    records = build_seed_entries(date.today())
    for record in records:
        gateway.create_entry(
            shop=str(record["shop"]),
            flavor=str(record["flavor"]),
            date=record["date"],
            notes=str(record.get("notes") or ""),
            person=str(record["person"]),
        )
    return len(records)


def main() -> None:
    inserted = seed_entries()
    print(f"Seeded {inserted} tasting entries.")


if __name__ == "__main__":
    main()
