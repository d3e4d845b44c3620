"""Playback domain - transport state machine and play history.

This domain handles:
- The playback session (play/pause/seek, queue, shuffle, repeat, volume)
- The media resource boundary and its MPV implementation
- Play history logging and play counts
"""

from .history import MIN_HISTORY_SECONDS, MIN_PLAY_COUNT_SECONDS, PlayHistoryRecorder, log_play
from .media import MediaAbortError, MediaError, MediaEvent, MediaEventType, MediaResource
from .mpv import MpvMediaResource, check_mpv_available, is_track_finished
from .session import PlaybackError, PlaybackSession, PlaybackState, RepeatMode, TransportStatus

__all__ = [
    # History
    "MIN_HISTORY_SECONDS",
    "MIN_PLAY_COUNT_SECONDS",
    "PlayHistoryRecorder",
    "log_play",
    # Media
    "MediaAbortError",
    "MediaError",
    "MediaEvent",
    "MediaEventType",
    "MediaResource",
    "MpvMediaResource",
    "check_mpv_available",
    "is_track_finished",
    # Session
    "PlaybackError",
    "PlaybackSession",
    "PlaybackState",
    "RepeatMode",
    "TransportStatus",
]
