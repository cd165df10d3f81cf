"""Structured logging helpers.

Modules log short event names (``entry_sync_load_failed``) and attach context
through ``extra=``. :class:`KeyValueFormatter` renders those extras after the
event name so the output stays greppable.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

__all__ = ["KeyValueFormatter", "configure_logging", "get_logger"]

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class KeyValueFormatter(logging.Formatter):
    """Append ``key=value`` pairs for every ``extra`` field on the record."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not extras:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name``."""

    return logging.getLogger(name)


def configure_logging(config: Mapping[str, Any] | None = None) -> None:
    """Install the key/value formatter on the ``gelatobase`` logger tree."""

    config = config or {}
    level_name = str(config.get("level", DEFAULT_LOG_LEVEL)).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger("gelatobase")
    root.setLevel(level)
    for handler in root.handlers:
        if getattr(handler, "_gelatobase_handler", False):
            handler.setLevel(level)
            return
    handler = logging.StreamHandler()
    handler.setFormatter(
        KeyValueFormatter(str(config.get("format", DEFAULT_LOG_FORMAT)))
    )
    handler.setLevel(level)
    handler._gelatobase_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
