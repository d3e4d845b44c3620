"""
Play history ("scrobble") logging.

The recorder tracks when listening to the current track started and, when
playback of that track stops for any reason, turns the elapsed time into a
play history write. Writes are best-effort: store failures are logged and
never interrupt playback.
"""

import time
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from beatbox.domain.library.models import PlayHistoryEntry, Track, TrackId
from beatbox.domain.library.store import Store

# Defaults; the session passes values from [playback] config
MIN_HISTORY_SECONDS = 5.0
MIN_PLAY_COUNT_SECONDS = 30.0


def log_play(
    store: Store,
    track_id: TrackId,
    duration_played: float,
    was_skipped: bool,
    min_play_count_seconds: float = MIN_PLAY_COUNT_SECONDS,
    now: Optional[datetime] = None,
) -> PlayHistoryEntry:
    """Append a play history entry and update the track's counters.

    Only unskipped plays longer than `min_play_count_seconds` count as a
    play: those increment `play_count` and set `last_played`.

    Args:
        store: Track store
        track_id: Track that was playing
        duration_played: Seconds listened
        was_skipped: False only for a natural end of track
        min_play_count_seconds: Threshold for counting a play
        now: Timestamp for the entry (default: now)

    Returns:
        The created history entry
    """
    now = now or datetime.now()
    entry = store.play_history.create(
        {
            "track_id": track_id,
            "duration_played": duration_played,
            "was_skipped": was_skipped,
            "created_date": now,
        }
    )

    if duration_played > min_play_count_seconds and not was_skipped:
        track = store.tracks.get(track_id)
        if track is not None:
            store.tracks.update(
                track_id,
                {"play_count": (track.play_count or 0) + 1, "last_played": now},
            )
            logger.debug(f"Counted play of {track_id} (total {track.play_count + 1})")
        else:
            logger.warning(f"Play logged for unknown track {track_id}")

    return entry


class PlayHistoryRecorder:
    """Turns listening start/stop transitions into play history writes.

    Exactly one write per stop: the listening start is cleared after every
    stop and re-armed only when the next play request succeeds.
    """

    def __init__(
        self,
        store: Store,
        min_history_seconds: float = MIN_HISTORY_SECONDS,
        min_play_count_seconds: float = MIN_PLAY_COUNT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.min_history_seconds = min_history_seconds
        self.min_play_count_seconds = min_play_count_seconds
        self._clock = clock
        self._started_at: Optional[float] = None

    @property
    def is_armed(self) -> bool:
        """Whether a listening start is currently recorded."""
        return self._started_at is not None

    def start(self) -> None:
        """Record "now" as the listening start, unless one is already set."""
        if self._started_at is None:
            self._started_at = self._clock()

    def elapsed(self) -> float:
        """Seconds since the listening start (0 when not armed)."""
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def stop(self, track: Optional[Track], was_skipped: bool) -> Optional[PlayHistoryEntry]:
        """Close the current listening session for `track`.

        Writes history when more than `min_history_seconds` were listened.

        Args:
            track: Track whose playback stopped
            was_skipped: False only for a natural end of track

        Returns:
            The history entry written, or None (too short, not armed, or the
            write failed)
        """
        elapsed = self.elapsed()
        armed = self._started_at is not None
        self._started_at = None

        if not armed or track is None or elapsed <= self.min_history_seconds:
            return None

        try:
            return log_play(
                self.store,
                track_id=track.id,
                duration_played=round(elapsed),
                was_skipped=was_skipped,
                min_play_count_seconds=self.min_play_count_seconds,
            )
        except Exception:
            logger.exception(f"Failed to log play history for track {track.id}")
            return None
