"""
Track store: generic record collections for tracks, playlists and history.

Every collection exposes the same small CRUD surface (list/get/create/
update/delete/filter). The in-memory implementation here backs tests and
the `memory` library backend; `sqlite_store` provides the persistent one.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, TypeVar

from loguru import logger

from .models import PlayHistoryEntry, Playlist, Track

R = TypeVar("R", Track, Playlist, PlayHistoryEntry)


class StoreError(RuntimeError):
    """Base class for track store failures."""


class NotFoundError(StoreError, LookupError):
    """Raised when updating or deleting a record id that does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


def new_id() -> str:
    """Generate a unique record id."""
    return uuid.uuid4().hex


def sort_records(records: List[R], sort: Optional[str]) -> List[R]:
    """Sort records by a field name; a leading '-' sorts descending.

    Records missing the field (None) always sort last.
    """
    if not sort:
        return records

    descending = sort.startswith("-")
    key = sort[1:] if descending else sort

    present = [r for r in records if getattr(r, key, None) is not None]
    missing = [r for r in records if getattr(r, key, None) is None]
    present.sort(key=lambda r: getattr(r, key), reverse=descending)
    return present + missing


def apply_patch(kind: str, record: R, patch: dict[str, Any]) -> R:
    """Return a copy of `record` with `patch` applied.

    Raises:
        ValueError: If the patch touches `id` or names an unknown field
    """
    if "id" in patch and patch["id"] != record.id:
        raise ValueError(f"{kind} id is immutable")
    updates = {k: v for k, v in patch.items() if k != "id"}
    try:
        return replace(record, **updates)
    except TypeError as e:
        raise ValueError(f"Invalid {kind} update {sorted(updates)}: {e}") from e


class RecordCollection(ABC, Generic[R]):
    """CRUD surface shared by every record type."""

    kind: str = "record"

    @abstractmethod
    def list(self, sort: Optional[str] = None, limit: Optional[int] = None) -> List[R]:
        """Return records, optionally sorted (`-field` for descending) and limited."""

    @abstractmethod
    def get(self, record_id: str) -> Optional[R]:
        """Return the record with this id, or None."""

    @abstractmethod
    def create(self, data: dict[str, Any]) -> R:
        """Insert a new record; id and created_date are assigned when absent."""

    @abstractmethod
    def update(self, record_id: str, patch: dict[str, Any]) -> R:
        """Apply a partial update and return the new record.

        Raises:
            NotFoundError: If no record has this id
        """

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove a record (missing ids are ignored)."""

    def filter(self, criteria: dict[str, Any]) -> List[R]:
        """Return records whose fields equal every value in `criteria`."""
        return [
            record
            for record in self.list()
            if all(getattr(record, key, None) == value for key, value in criteria.items())
        ]


class InMemoryCollection(RecordCollection[R]):
    """Insertion-ordered, process-local collection."""

    def __init__(self, kind: str, factory: Callable[[dict[str, Any]], R]):
        self.kind = kind
        self._factory = factory
        self._records: dict[str, R] = {}

    def list(self, sort: Optional[str] = None, limit: Optional[int] = None) -> List[R]:
        records = sort_records(list(self._records.values()), sort)
        return records[:limit] if limit else records

    def get(self, record_id: str) -> Optional[R]:
        return self._records.get(record_id)

    def create(self, data: dict[str, Any]) -> R:
        values = dict(data)
        values.setdefault("id", new_id())
        values.setdefault("created_date", datetime.now())
        if values["id"] in self._records:
            raise StoreError(f"{self.kind} {values['id']} already exists")

        record = self._factory(values)
        self._records[record.id] = record
        logger.debug(f"Created {self.kind} {record.id}")
        return record

    def update(self, record_id: str, patch: dict[str, Any]) -> R:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(self.kind, record_id)

        updated = apply_patch(self.kind, record, patch)
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> None:
        self._records.pop(record_id, None)


@dataclass
class Store:
    """The three collections the application works with."""

    tracks: RecordCollection[Track]
    playlists: RecordCollection[Playlist]
    play_history: RecordCollection[PlayHistoryEntry]


def create_memory_store() -> Store:
    """Create an empty in-memory store."""
    return Store(
        tracks=InMemoryCollection("Track", Track.from_dict),
        playlists=InMemoryCollection("Playlist", Playlist.from_dict),
        play_history=InMemoryCollection("PlayHistory", PlayHistoryEntry.from_dict),
    )
