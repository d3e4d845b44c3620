"""
Playlist management for Beatbox
Functional approach with explicit store passing
"""

from typing import Any, Iterable, Optional

from loguru import logger

from beatbox.domain.library.models import Playlist, RuleSet, Track, TrackId
from beatbox.domain.library.store import NotFoundError, Store

from .rules import validate_rule_set
from .smart import materialize


def _require_playlist(store: Store, playlist_id: str) -> Playlist:
    playlist = store.playlists.get(playlist_id)
    if playlist is None:
        raise NotFoundError("Playlist", playlist_id)
    return playlist


def create_playlist(
    store: Store,
    name: str,
    description: Optional[str] = None,
    track_ids: Iterable[TrackId] = (),
) -> Playlist:
    """
    Create a new manual playlist.

    Args:
        store: Track store
        name: Playlist name (must not be blank)
        description: Optional description
        track_ids: Initial tracks, in order (duplicates dropped)

    Returns:
        The created playlist

    Raises:
        ValueError: If the name is blank
    """
    if not name or not name.strip():
        raise ValueError("Playlist name must not be empty")

    playlist = store.playlists.create(
        {
            "name": name.strip(),
            "description": description,
            "track_ids": list(track_ids),
            "is_smart": False,
        }
    )
    logger.info(f"Created playlist {playlist.name!r} ({playlist.id})")
    return playlist


def create_smart_playlist(
    store: Store,
    name: str,
    criteria: RuleSet | dict[str, Any],
    description: Optional[str] = None,
) -> Playlist:
    """
    Create a smart playlist and materialize it right away.

    Args:
        store: Track store
        name: Playlist name (must not be blank)
        criteria: RuleSet, or its dict form {"match_all": ..., "rules": [...]}
        description: Optional description

    Returns:
        The created playlist with `track_ids` already populated

    Raises:
        ValueError: If the name is blank or any rule is invalid
    """
    if not name or not name.strip():
        raise ValueError("Playlist name must not be empty")

    rule_set = criteria if isinstance(criteria, RuleSet) else RuleSet.from_dict(criteria)
    validate_rule_set(rule_set)

    track_ids = materialize(rule_set, store.tracks.list())
    playlist = store.playlists.create(
        {
            "name": name.strip(),
            "description": description,
            "track_ids": track_ids,
            "is_smart": True,
            "smart_criteria": rule_set,
        }
    )
    logger.info(
        f"Created smart playlist {playlist.name!r} ({playlist.id}) "
        f"with {len(track_ids)} tracks"
    )
    return playlist


def update_smart_criteria(
    store: Store, playlist_id: str, criteria: RuleSet | dict[str, Any]
) -> Playlist:
    """Replace a smart playlist's rules and re-materialize it.

    Raises:
        NotFoundError: If the playlist does not exist
        ValueError: If the playlist is not smart or any rule is invalid
    """
    playlist = _require_playlist(store, playlist_id)
    if not playlist.is_smart:
        raise ValueError(f"Playlist {playlist.name!r} is not a smart playlist")

    rule_set = criteria if isinstance(criteria, RuleSet) else RuleSet.from_dict(criteria)
    validate_rule_set(rule_set)

    return store.playlists.update(
        playlist_id,
        {
            "smart_criteria": rule_set,
            "track_ids": materialize(rule_set, store.tracks.list()),
        },
    )


def rename_playlist(store: Store, playlist_id: str, new_name: str) -> Playlist:
    """Rename a playlist.

    Raises:
        ValueError: If the new name is blank
        NotFoundError: If the playlist does not exist
    """
    if not new_name or not new_name.strip():
        raise ValueError("Playlist name must not be empty")
    return store.playlists.update(playlist_id, {"name": new_name.strip()})


def delete_playlist(store: Store, playlist_id: str) -> None:
    """Delete a playlist (tracks are untouched)."""
    store.playlists.delete(playlist_id)
    logger.info(f"Deleted playlist {playlist_id}")


def add_tracks_to_playlist(
    store: Store, playlist_id: str, track_ids: Iterable[TrackId]
) -> Playlist:
    """Append tracks to a manual playlist, skipping ones already present.

    Raises:
        NotFoundError: If the playlist does not exist
        ValueError: If the playlist is smart (its tracks are derived)
    """
    playlist = _require_playlist(store, playlist_id)
    if playlist.is_smart:
        raise ValueError(
            f"Cannot add tracks to smart playlist {playlist.name!r}. "
            "Smart playlist tracks are computed from its rules."
        )

    return store.playlists.update(
        playlist_id, {"track_ids": list(playlist.track_ids) + list(track_ids)}
    )


def remove_track_from_playlist(
    store: Store, playlist_id: str, track_id: TrackId
) -> Playlist:
    """Remove a track from a manual playlist.

    Raises:
        NotFoundError: If the playlist does not exist
        ValueError: If the playlist is smart
    """
    playlist = _require_playlist(store, playlist_id)
    if playlist.is_smart:
        raise ValueError(f"Cannot remove tracks from smart playlist {playlist.name!r}")

    return store.playlists.update(
        playlist_id,
        {"track_ids": [tid for tid in playlist.track_ids if tid != track_id]},
    )


def get_playlist_tracks(store: Store, playlist_id: str) -> list[Track]:
    """Resolve a playlist's ids to tracks, in playlist order.

    Ids whose track no longer exists are skipped.

    Raises:
        NotFoundError: If the playlist does not exist
    """
    playlist = _require_playlist(store, playlist_id)

    tracks = []
    for track_id in playlist.track_ids:
        track = store.tracks.get(track_id)
        if track is None:
            logger.debug(f"Playlist {playlist_id} references missing track {track_id}")
            continue
        tracks.append(track)
    return tracks
