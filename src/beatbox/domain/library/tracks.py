"""
Track edits that keep derived data (smart playlists, manual playlist
membership) in step with the library.
"""

from typing import Any

from loguru import logger

from beatbox.core.config import Config
from beatbox.domain.playlists.smart import on_tracks_changed

from .models import Track
from .store import Store


def add_track(store: Store, config: Config, data: dict[str, Any]) -> Track:
    """Create a track and refresh smart playlists."""
    track = store.tracks.create(data)
    logger.info(f"Added track {track.id}: {track.artist} - {track.title}")
    on_tracks_changed(store, config)
    return track


def edit_track(
    store: Store, config: Config, track_id: str, patch: dict[str, Any]
) -> Track:
    """Apply a user edit to a track and refresh smart playlists.

    Raises:
        NotFoundError: If the track does not exist
        ValueError: If the patch is invalid (e.g. touches `id`)
    """
    track = store.tracks.update(track_id, patch)
    on_tracks_changed(store, config)
    return track


def remove_track(store: Store, config: Config, track_id: str) -> None:
    """Delete a track, drop it from manual playlists, refresh smart playlists."""
    store.tracks.delete(track_id)

    for playlist in store.playlists.filter({"is_smart": False}):
        if track_id in playlist.track_ids:
            store.playlists.update(
                playlist.id,
                {"track_ids": [tid for tid in playlist.track_ids if tid != track_id]},
            )

    logger.info(f"Removed track {track_id}")
    on_tracks_changed(store, config)
