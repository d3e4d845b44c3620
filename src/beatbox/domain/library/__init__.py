"""Music library domain - records and the track store.

This domain handles:
- Track, Playlist, PlayHistoryEntry and smart criteria records
- The generic record store (in-memory and SQLite implementations)
- Listening statistics
"""

from .models import (
    PlayHistoryEntry,
    Playlist,
    Rule,
    RuleSet,
    Track,
    TrackId,
)
from .store import (
    InMemoryCollection,
    NotFoundError,
    RecordCollection,
    Store,
    StoreError,
    create_memory_store,
)

__all__ = [
    "PlayHistoryEntry",
    "Playlist",
    "Rule",
    "RuleSet",
    "Track",
    "TrackId",
    "InMemoryCollection",
    "NotFoundError",
    "RecordCollection",
    "Store",
    "StoreError",
    "create_memory_store",
]
