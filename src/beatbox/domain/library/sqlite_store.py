"""
SQLite-backed track store.

One table per record type (see core.database for the schema). Each call
opens its own short-lived connection, so collections are safe to share
across the application.
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

from loguru import logger

from beatbox.core.database import get_db_connection, init_database

from .models import PlayHistoryEntry, Playlist, Track, format_timestamp
from .store import (
    NotFoundError,
    R,
    RecordCollection,
    Store,
    StoreError,
    apply_patch,
    new_id,
)


def _track_to_row(track: Track) -> dict[str, Any]:
    row = track.to_dict()
    row["is_favorite"] = int(track.is_favorite)
    return row


def _track_from_row(row: dict[str, Any]) -> Track:
    return Track.from_dict(row)


def _playlist_to_row(playlist: Playlist) -> dict[str, Any]:
    row = playlist.to_dict()
    row["track_ids"] = json.dumps(row["track_ids"])
    row["is_smart"] = int(playlist.is_smart)
    row["smart_criteria"] = (
        json.dumps(row["smart_criteria"]) if row["smart_criteria"] else None
    )
    return row


def _playlist_from_row(row: dict[str, Any]) -> Playlist:
    data = dict(row)
    data["track_ids"] = json.loads(data["track_ids"] or "[]")
    data["smart_criteria"] = (
        json.loads(data["smart_criteria"]) if data["smart_criteria"] else None
    )
    return Playlist.from_dict(data)


def _history_to_row(entry: PlayHistoryEntry) -> dict[str, Any]:
    row = entry.to_dict()
    row["was_skipped"] = int(entry.was_skipped)
    return row


def _history_from_row(row: dict[str, Any]) -> PlayHistoryEntry:
    return PlayHistoryEntry.from_dict(row)


def _to_sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    return value


class SqliteCollection(RecordCollection[R]):
    """Collection persisted in a single SQLite table."""

    def __init__(
        self,
        db_path: Path,
        kind: str,
        table: str,
        columns: tuple[str, ...],
        factory: Callable[[dict[str, Any]], R],
        to_row: Callable[[R], dict[str, Any]],
        from_row: Callable[[dict[str, Any]], R],
        json_columns: tuple[str, ...] = (),
    ):
        self.db_path = db_path
        self.kind = kind
        self.table = table
        self.columns = columns
        self._factory = factory
        self._to_row = to_row
        self._from_row = from_row
        self._json_columns = json_columns

    def _select(self, where: str = "", params: tuple = (), order: str = "") -> List[R]:
        query = f"SELECT * FROM {self.table} {where} {order}"
        try:
            with get_db_connection(self.db_path) as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read {self.kind} records: {e}") from e
        return [self._from_row(dict(row)) for row in rows]

    def list(self, sort: Optional[str] = None, limit: Optional[int] = None) -> List[R]:
        order = "ORDER BY rowid"
        if sort:
            descending = sort.startswith("-")
            key = sort[1:] if descending else sort
            if key not in self.columns:
                raise ValueError(f"Cannot sort {self.kind} by unknown field {key!r}")
            direction = "DESC" if descending else "ASC"
            # NULLs last in either direction, insertion order breaks ties
            order = f"ORDER BY {key} IS NULL, {key} {direction}, rowid"
        if limit:
            order += f" LIMIT {int(limit)}"
        return self._select(order=order)

    def get(self, record_id: str) -> Optional[R]:
        records = self._select("WHERE id = ?", (record_id,))
        return records[0] if records else None

    def create(self, data: dict[str, Any]) -> R:
        values = dict(data)
        values.setdefault("id", new_id())
        values.setdefault("created_date", datetime.now())
        record = self._factory(values)

        row = self._to_row(record)
        placeholders = ", ".join("?" for _ in self.columns)
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute(
                    f"INSERT INTO {self.table} ({', '.join(self.columns)}) VALUES ({placeholders})",
                    tuple(row[c] for c in self.columns),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise StoreError(f"{self.kind} {record.id} already exists") from e
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create {self.kind}: {e}") from e

        logger.debug(f"Created {self.kind} {record.id}")
        return record

    def update(self, record_id: str, patch: dict[str, Any]) -> R:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(self.kind, record_id)

        updated = apply_patch(self.kind, record, patch)
        row = self._to_row(updated)
        assignments = ", ".join(f"{c} = ?" for c in self.columns if c != "id")
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute(
                    f"UPDATE {self.table} SET {assignments} WHERE id = ?",
                    tuple(row[c] for c in self.columns if c != "id") + (record_id,),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to update {self.kind} {record_id}: {e}") from e
        return updated

    def delete(self, record_id: str) -> None:
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (record_id,))
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete {self.kind} {record_id}: {e}") from e

    def filter(self, criteria: dict[str, Any]) -> List[R]:
        sql_keys = [
            k for k in criteria if k in self.columns and k not in self._json_columns
        ]
        if len(sql_keys) != len(criteria):
            # JSON-encoded or unknown fields: compare on decoded records
            return super().filter(criteria)
        if not criteria:
            return self.list()

        where = " AND ".join(f"{k} = ?" for k in sql_keys)
        params = tuple(_to_sql_value(criteria[k]) for k in sql_keys)
        return self._select(f"WHERE {where}", params, "ORDER BY rowid")


TRACK_COLUMNS = (
    "id",
    "title",
    "artist",
    "album",
    "genre",
    "year",
    "track_number",
    "duration",
    "file_format",
    "file_size",
    "file_path",
    "album_art_url",
    "is_favorite",
    "play_count",
    "last_played",
    "created_date",
)

PLAYLIST_COLUMNS = (
    "id",
    "name",
    "description",
    "track_ids",
    "is_smart",
    "smart_criteria",
    "created_date",
)

HISTORY_COLUMNS = ("id", "track_id", "duration_played", "was_skipped", "created_date")


def create_sqlite_store(db_path: Path) -> Store:
    """Open (and migrate if needed) a SQLite store at `db_path`."""
    init_database(db_path)
    logger.info(f"Using SQLite store: {db_path}")

    return Store(
        tracks=SqliteCollection(
            db_path,
            "Track",
            "tracks",
            TRACK_COLUMNS,
            Track.from_dict,
            _track_to_row,
            _track_from_row,
        ),
        playlists=SqliteCollection(
            db_path,
            "Playlist",
            "playlists",
            PLAYLIST_COLUMNS,
            Playlist.from_dict,
            _playlist_to_row,
            _playlist_from_row,
            json_columns=("track_ids", "smart_criteria"),
        ),
        play_history=SqliteCollection(
            db_path,
            "PlayHistory",
            "play_history",
            HISTORY_COLUMNS,
            PlayHistoryEntry.from_dict,
            _history_to_row,
            _history_from_row,
        ),
    )
