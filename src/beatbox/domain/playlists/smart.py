"""Smart playlist materialization.

A smart playlist's `track_ids` is a cached view of its criteria applied to
the whole library. The maintenance pass recomputes and persists that view
for every smart playlist.
"""

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from beatbox.core.config import Config
from beatbox.domain.library.models import RuleSet, Track, TrackId
from beatbox.domain.library.store import Store

from .rules import evaluate_playlist

# Upper bound on tracks fetched for one maintenance pass
TRACK_FETCH_LIMIT = 10000


class MaintenanceError(RuntimeError):
    """Raised when a maintenance pass cannot start (track fetch failed)."""


@dataclass(frozen=True)
class MaintenanceSummary:
    """Outcome of one smart playlist maintenance pass."""

    updated_count: int
    failed_count: int
    message: str


def materialize(rule_set: RuleSet, tracks: Iterable[Track]) -> list[TrackId]:
    """Return ids of matching tracks, in input order, without duplicates."""
    matching = (track.id for track in tracks if evaluate_playlist(rule_set, track))
    return list(dict.fromkeys(matching))


def update_smart_playlists(store: Store) -> MaintenanceSummary:
    """Recompute and persist `track_ids` for every smart playlist.

    The track universe is fetched once up front; if that fails nothing is
    written. A failing playlist update is logged and the pass moves on.

    Args:
        store: Track store holding tracks and playlists

    Returns:
        Summary with updated/failed counts and a human-readable message

    Raises:
        MaintenanceError: If tracks or smart playlists cannot be fetched
    """
    try:
        all_tracks = store.tracks.list(limit=TRACK_FETCH_LIMIT)
        smart_playlists = store.playlists.filter({"is_smart": True})
    except Exception as e:
        logger.exception("Smart playlist maintenance aborted: could not fetch library")
        raise MaintenanceError(f"Could not fetch library: {e}") from e

    updated_count = 0
    failed_count = 0

    for playlist in smart_playlists:
        # No criteria or no rules materializes to an empty list
        criteria = playlist.smart_criteria or RuleSet(match_all=True, rules=())
        track_ids = materialize(criteria, all_tracks)
        try:
            store.playlists.update(playlist.id, {"track_ids": track_ids})
        except Exception:
            failed_count += 1
            logger.exception(
                f"Failed to update smart playlist {playlist.id} ({playlist.name!r})"
            )
            continue

        updated_count += 1
        logger.debug(
            f"Smart playlist {playlist.name!r}: {len(track_ids)} matching tracks"
        )

    message = f"Updated {updated_count} smart playlist{'s' if updated_count != 1 else ''}."
    if failed_count:
        message += f" {failed_count} failed."

    logger.info(f"Smart playlist maintenance: {message}")
    return MaintenanceSummary(
        updated_count=updated_count, failed_count=failed_count, message=message
    )


def on_tracks_changed(store: Store, config: Config) -> MaintenanceSummary | None:
    """Track create/update/delete hook: refresh smart playlists if enabled.

    Returns:
        The pass summary, or None when auto-update is disabled or the pass
        could not start
    """
    if not config.library.auto_update_smart_playlists:
        return None

    try:
        return update_smart_playlists(store)
    except MaintenanceError as e:
        logger.warning(f"Skipped smart playlist refresh after track change: {e}")
        return None
