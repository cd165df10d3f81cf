"""Entry domain package."""

from .admin import AdminGate
from .errors import (
    ConfigurationError,
    EntryServiceError,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    ValidationError,
)
from .gateway import (
    EntryStoreGateway,
    InMemoryEntryStoreGateway,
    SqlEntryStoreGateway,
    build_entry_store_gateway,
)
from .models import Entry, EntryDraft, normalize_entry_payload, utcnow

__all__ = [
    "AdminGate",
    "ConfigurationError",
    "Entry",
    "EntryDraft",
    "EntryServiceError",
    "EntryStoreGateway",
    "InMemoryEntryStoreGateway",
    "NotFoundError",
    "PermissionDeniedError",
    "SqlEntryStoreGateway",
    "TransportError",
    "ValidationError",
    "build_entry_store_gateway",
    "normalize_entry_payload",
    "utcnow",
]
