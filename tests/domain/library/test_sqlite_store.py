"""Tests for the SQLite-backed store."""

import sqlite3
from datetime import datetime

import pytest

from beatbox.core.database import SCHEMA_VERSION, get_db_connection
from beatbox.domain.library.models import Rule, RuleSet
from beatbox.domain.library.sqlite_store import create_sqlite_store
from beatbox.domain.library.store import NotFoundError, StoreError
from conftest import make_track


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "library" / "beatbox.db"


@pytest.fixture
def sqlite_store(db_path):
    return create_sqlite_store(db_path)


class TestSchema:
    def test_database_created_at_latest_version(self, sqlite_store, db_path):
        with get_db_connection(db_path) as conn:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }

        assert version == SCHEMA_VERSION
        assert {"tracks", "playlists", "play_history"} <= tables

    def test_reopen_keeps_data(self, sqlite_store, db_path):
        sqlite_store.tracks.create(make_track("t1").to_dict())

        reopened = create_sqlite_store(db_path)

        assert reopened.tracks.get("t1").title == "Song t1"


class TestSqliteTracks:
    def test_round_trip_preserves_types(self, sqlite_store):
        played = datetime(2024, 3, 1, 8, 30)
        created = sqlite_store.tracks.create(
            make_track("t1", is_favorite=True, last_played=played, year=1987).to_dict()
        )

        loaded = sqlite_store.tracks.get("t1")

        assert loaded == created
        assert loaded.is_favorite is True
        assert loaded.last_played == played
        assert loaded.year == 1987

    def test_update_and_missing(self, sqlite_store):
        sqlite_store.tracks.create(make_track("t1").to_dict())

        updated = sqlite_store.tracks.update("t1", {"play_count": 4})

        assert updated.play_count == 4
        assert sqlite_store.tracks.get("t1").play_count == 4
        with pytest.raises(NotFoundError):
            sqlite_store.tracks.update("zz", {"play_count": 1})

    def test_duplicate_id(self, sqlite_store):
        sqlite_store.tracks.create(make_track("t1").to_dict())

        with pytest.raises(StoreError):
            sqlite_store.tracks.create(make_track("t1").to_dict())

    def test_sort_nulls_last(self, sqlite_store):
        sqlite_store.tracks.create(make_track("a", year=2001).to_dict())
        sqlite_store.tracks.create(make_track("b", year=None).to_dict())
        sqlite_store.tracks.create(make_track("c", year=1990).to_dict())

        assert [t.id for t in sqlite_store.tracks.list(sort="-year")] == ["a", "c", "b"]
        assert [t.id for t in sqlite_store.tracks.list(sort="year", limit=2)] == ["c", "a"]

    def test_sort_unknown_field(self, sqlite_store):
        with pytest.raises(ValueError):
            sqlite_store.tracks.list(sort="bpm")

    def test_delete(self, sqlite_store):
        sqlite_store.tracks.create(make_track("t1").to_dict())

        sqlite_store.tracks.delete("t1")

        assert sqlite_store.tracks.get("t1") is None

    def test_read_failure_wrapped(self, sqlite_store, db_path):
        with get_db_connection(db_path) as conn:
            conn.execute("DROP TABLE tracks")
            conn.commit()

        with pytest.raises(StoreError) as exc_info:
            sqlite_store.tracks.list()

        assert isinstance(exc_info.value.__cause__, sqlite3.Error)


class TestSqlitePlaylists:
    def test_smart_playlist_round_trip(self, sqlite_store):
        criteria = RuleSet(match_all=False, rules=(Rule("year", "is_greater_than", 2000),))
        created = sqlite_store.playlists.create(
            {
                "name": "Modern",
                "track_ids": ["t2", "t1"],
                "is_smart": True,
                "smart_criteria": criteria,
            }
        )

        loaded = sqlite_store.playlists.get(created.id)

        assert loaded.track_ids == ("t2", "t1")
        assert loaded.smart_criteria == criteria
        assert loaded.is_smart is True

    def test_filter_by_flag(self, sqlite_store):
        sqlite_store.playlists.create({"name": "Manual"})
        smart = sqlite_store.playlists.create(
            {
                "name": "Smart",
                "is_smart": True,
                "smart_criteria": {"rules": [{"field": "genre", "operator": "is", "value": "Rock"}]},
            }
        )

        assert [p.id for p in sqlite_store.playlists.filter({"is_smart": True})] == [smart.id]

    def test_filter_on_json_column(self, sqlite_store):
        wanted = sqlite_store.playlists.create({"name": "A", "track_ids": ["t1"]})
        sqlite_store.playlists.create({"name": "B", "track_ids": ["t2"]})

        assert sqlite_store.playlists.filter({"track_ids": ("t1",)}) == [wanted]


class TestSqliteHistory:
    def test_history_sorted_newest_first(self, sqlite_store):
        sqlite_store.play_history.create(
            {"track_id": "t1", "duration_played": 10, "was_skipped": True,
             "created_date": datetime(2024, 1, 1)}
        )
        sqlite_store.play_history.create(
            {"track_id": "t2", "duration_played": 200, "was_skipped": False,
             "created_date": datetime(2024, 1, 2)}
        )

        history = sqlite_store.play_history.list(sort="-created_date")

        assert [h.track_id for h in history] == ["t2", "t1"]
        assert history[1].was_skipped is True
        assert history[0].duration_played == 200.0
