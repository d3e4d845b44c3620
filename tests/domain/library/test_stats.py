"""Tests for listening statistics."""

from datetime import datetime, timedelta

import pytest

from beatbox.domain.library.stats import format_bytes, format_duration, get_listening_stats
from beatbox.domain.playback.history import log_play


NOW = datetime(2024, 6, 15, 12, 0)


def test_empty_library(store):
    stats = get_listening_stats(store, now=NOW)

    assert stats.total_plays == 0
    assert stats.skip_rate == 0.0
    assert stats.top_tracks_all_time == []
    assert stats.top_tracks_weekly == []


def test_totals_and_skip_rate(store, tracks):
    log_play(store, "t1", 200, was_skipped=False, now=NOW)
    log_play(store, "t1", 180, was_skipped=False, now=NOW)
    log_play(store, "t2", 10, was_skipped=True, now=NOW)
    log_play(store, "t3", 40, was_skipped=True, now=NOW - timedelta(days=30))
    store.playlists.create({"name": "Mix"})

    stats = get_listening_stats(store, now=NOW)

    assert stats.total_plays == 4
    assert stats.total_listening_seconds == 430
    assert stats.total_tracks == 3
    assert stats.total_playlists == 1
    assert stats.library_size_bytes == 12_000_000
    assert stats.skip_rate == 0.5


def test_top_tracks(store, tracks):
    log_play(store, "t2", 200, was_skipped=False, now=NOW)
    log_play(store, "t2", 200, was_skipped=False, now=NOW)
    log_play(store, "t1", 200, was_skipped=False, now=NOW)
    log_play(store, "t3", 20, was_skipped=True, now=NOW - timedelta(days=8))

    stats = get_listening_stats(store, now=NOW)

    assert [(s.track.id, s.play_count) for s in stats.top_tracks_all_time] == [
        ("t2", 2),
        ("t1", 1),
    ]
    assert [s.track.id for s in stats.top_tracks_weekly] == ["t2", "t1"]


@pytest.mark.parametrize(
    "seconds, expected",
    [(42, "42s"), (200, "3m 20s"), (3900, "1h 5m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (5 * 1024**2, "5 MB")],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected
