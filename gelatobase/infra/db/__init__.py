"""Database engine for the entries table."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ...config import load_settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Driver-specific ``create_engine`` keyword arguments."""

    if database_url.startswith("sqlite"):
        # FastAPI runs sync handlers on a threadpool.
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


@lru_cache()
def get_engine() -> Engine:
    """Return the process-wide engine for the configured ``DATABASE_URL``."""

    database_url = load_settings().database_url
    return create_engine(
        database_url, echo=False, future=True, **engine_options(database_url)
    )
