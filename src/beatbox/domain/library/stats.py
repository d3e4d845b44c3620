"""
Listening statistics.

Aggregates play history and track counters into the numbers shown on the
stats page: totals, skip rate, and top tracks all-time and this week.
"""

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .models import Track
from .store import Store

# Upper bound on records fetched for one stats computation
FETCH_LIMIT = 10000


@dataclass(frozen=True)
class TrackPlayStats:
    """Statistics for a specific track's playback."""

    track: Track
    play_count: int


@dataclass(frozen=True)
class ListeningStats:
    """Library-wide listening statistics."""

    total_plays: int  # history entries, skipped or not
    total_listening_seconds: float
    total_tracks: int
    total_playlists: int
    library_size_bytes: int
    skip_rate: float  # 0.0 - 1.0
    top_tracks_all_time: list[TrackPlayStats]
    top_tracks_weekly: list[TrackPlayStats]


def get_listening_stats(
    store: Store, now: Optional[datetime] = None, top_n: int = 5
) -> ListeningStats:
    """Compute listening statistics from the store.

    Args:
        store: Track store
        now: Reference time for the weekly window (default: now)
        top_n: Number of tracks in each top list

    Returns:
        ListeningStats snapshot
    """
    now = now or datetime.now()
    tracks = store.tracks.list(limit=FETCH_LIMIT)
    history = store.play_history.list(sort="-created_date", limit=FETCH_LIMIT)
    playlists = store.playlists.list(limit=FETCH_LIMIT)

    tracks_by_id = {track.id: track for track in tracks}

    total_plays = len(history)
    skipped = sum(1 for entry in history if entry.was_skipped)

    top_all_time = [
        TrackPlayStats(track=track, play_count=track.play_count)
        for track in sorted(tracks, key=lambda t: t.play_count, reverse=True)[:top_n]
        if track.play_count > 0
    ]

    week_start = now - timedelta(days=7)
    weekly_counts = Counter(
        entry.track_id
        for entry in history
        if entry.created_date >= week_start and entry.track_id in tracks_by_id
    )
    top_weekly = [
        TrackPlayStats(track=tracks_by_id[track_id], play_count=count)
        for track_id, count in weekly_counts.most_common(top_n)
    ]

    return ListeningStats(
        total_plays=total_plays,
        total_listening_seconds=sum(entry.duration_played for entry in history),
        total_tracks=len(tracks),
        total_playlists=len(playlists),
        library_size_bytes=sum(track.file_size or 0 for track in tracks),
        skip_rate=skipped / total_plays if total_plays else 0.0,
        top_tracks_all_time=top_all_time,
        top_tracks_weekly=top_weekly,
    )


def format_duration(seconds: float) -> str:
    """Format a duration as '1h 5m', '3m 20s' or '42s'."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_bytes(size: int) -> str:
    """Format a byte count with a binary unit, e.g. '1.5 MB'."""
    if not size:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {units[exponent]}"
