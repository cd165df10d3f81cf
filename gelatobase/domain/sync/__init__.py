"""Client-side entry synchronization."""

from .demo_data import build_demo_entries
from .synchronizer import EntrySynchronizer, OperationState, SyncResult

__all__ = [
    "EntrySynchronizer",
    "OperationState",
    "SyncResult",
    "build_demo_entries",
]
