"""Playlists domain - manual playlists, smart rules, materialization.

This domain handles:
- The smart playlist rule language and its evaluator
- Materializing smart playlists and the maintenance pass
- Playlist CRUD
"""

from .crud import (
    add_tracks_to_playlist,
    create_playlist,
    create_smart_playlist,
    delete_playlist,
    get_playlist_tracks,
    remove_track_from_playlist,
    rename_playlist,
    update_smart_criteria,
)
from .rules import evaluate_playlist, evaluate_rule, validate_rule, validate_rule_set
from .smart import (
    MaintenanceError,
    MaintenanceSummary,
    materialize,
    on_tracks_changed,
    update_smart_playlists,
)

__all__ = [
    # CRUD
    "add_tracks_to_playlist",
    "create_playlist",
    "create_smart_playlist",
    "delete_playlist",
    "get_playlist_tracks",
    "remove_track_from_playlist",
    "rename_playlist",
    "update_smart_criteria",
    # Rules
    "evaluate_playlist",
    "evaluate_rule",
    "validate_rule",
    "validate_rule_set",
    # Materialization
    "MaintenanceError",
    "MaintenanceSummary",
    "materialize",
    "on_tracks_changed",
    "update_smart_playlists",
]
