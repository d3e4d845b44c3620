"""Application context for explicit state passing.

AppContext bundles the configuration, the track store and the playback
objects. It is built once by `beatbox.main.create_context` and passed to
every command handler; nothing in the domain layer reaches for globals.
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional

from rich.console import Console

from beatbox.core.config import Config
from beatbox.domain.library.store import Store
from beatbox.domain.playback.history import PlayHistoryRecorder
from beatbox.domain.playback.media import MediaResource
from beatbox.domain.playback.session import PlaybackError, PlaybackSession


@dataclass
class AppContext:
    """Application context passed to all command handlers.

    Attributes:
        config: Application configuration
        store: Track/playlist/history store
        recorder: Play history recorder shared by playback sessions
        console: Rich Console for formatted output
        session: Active playback session (None until playback starts)
    """

    config: Config
    store: Store
    recorder: PlayHistoryRecorder
    console: Optional[Console] = None
    session: Optional[PlaybackSession] = None

    @classmethod
    def create(
        cls, config: Config, store: Store, console: Optional[Console] = None
    ) -> "AppContext":
        """Create the application context with a recorder configured from [playback]."""
        recorder = PlayHistoryRecorder(
            store,
            min_history_seconds=config.playback.min_history_seconds,
            min_play_count_seconds=config.playback.min_play_count_seconds,
        )
        return cls(config=config, store=store, recorder=recorder, console=console)

    def attach_session(
        self,
        media: MediaResource,
        rng: Optional[random.Random] = None,
        on_error: Optional[Callable[[PlaybackError], None]] = None,
    ) -> PlaybackSession:
        """Create the playback session for `media` and make it current."""
        self.session = PlaybackSession(
            media,
            self.recorder,
            volume=self.config.playback.volume,
            rng=rng,
            on_error=on_error,
        )
        return self.session
