"""
Playback session: the transport state machine behind the player.

One session owns one media resource. Transport calls (play, pause, seek,
next/previous) and media events (timeupdate, ended, loadedmetadata, error)
are the only things that change session state. Listening time is handed
to the play history recorder whenever a track stops.

States: idle (no track yet) -> loading -> paused/playing. Idle is never
re-entered once a track has been loaded.
"""

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from loguru import logger

from beatbox.domain.library.models import Track

from .history import PlayHistoryRecorder
from .media import MediaAbortError, MediaError, MediaEvent, MediaEventType, MediaResource


class RepeatMode(str, Enum):
    OFF = "off"
    ALL = "all"
    ONE = "one"


# toggle_repeat cycles through modes in this order
REPEAT_CYCLE = (RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE)


class TransportStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PAUSED = "paused"
    PLAYING = "playing"


class PlaybackError(RuntimeError):
    """A track could not be played (any media failure other than an abort)."""

    def __init__(self, track: Track, cause: MediaError):
        super().__init__(f"Cannot play {track.artist} - {track.title}: {cause}")
        self.track = track
        self.cause = cause


@dataclass
class PlaybackState:
    """Runtime playback state. Never persisted."""

    current_track: Optional[Track] = None
    is_playing: bool = False
    current_time_seconds: float = 0.0
    duration_seconds: float = 0.0
    volume: int = 75
    is_muted: bool = False
    is_shuffled: bool = False
    repeat_mode: RepeatMode = RepeatMode.OFF
    queue: list[Track] = field(default_factory=list)
    queue_index: int = 0
    is_minimized: bool = False
    status: TransportStatus = TransportStatus.IDLE


def _index_of(queue: Sequence[Track], track: Track) -> Optional[int]:
    for i, candidate in enumerate(queue):
        if candidate.id == track.id:
            return i
    return None


def default_source(track: Track) -> str:
    """Media source for a track: its local file path."""
    return track.file_path


class PlaybackSession:
    """Single-media-element playback state machine.

    `state` is owned by the session; read it freely, change it only through
    the transport methods.
    """

    def __init__(
        self,
        media: MediaResource,
        recorder: PlayHistoryRecorder,
        volume: int = 75,
        rng: Optional[random.Random] = None,
        source_for: Callable[[Track], str] = default_source,
        on_error: Optional[Callable[[PlaybackError], None]] = None,
    ):
        self.media = media
        self.recorder = recorder
        self.state = PlaybackState(volume=max(0, min(100, volume)))
        self._rng = rng or random.Random()
        self._source_for = source_for
        self._on_error = on_error
        # Single slot: the play request currently in flight on the media resource
        self._play_request: Optional[asyncio.Future] = None
        self._apply_volume()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def play(self, track: Track, queue: Optional[Sequence[Track]] = None) -> None:
        """Play `track`, optionally replacing the queue.

        Switching away from a different playing track counts as a skip for
        that track. When `queue` is given but does not contain `track`, the
        current queue is kept.

        Raises:
            PlaybackError: If the media resource fails for a reason other
                than the request being superseded
        """
        state = self.state
        current = state.current_track

        if state.is_playing and current is not None and current.id != track.id:
            self.recorder.stop(current, was_skipped=True)

        track_changed = current is None or current.id != track.id
        if not track_changed and state.is_playing:
            return

        if track_changed:
            state.current_track = track
            if queue is not None:
                index = _index_of(queue, track)
                if index is not None:
                    state.queue = list(queue)
                    state.queue_index = index
                else:
                    logger.warning(
                        f"Track {track.id} not in supplied queue; keeping current queue"
                    )

        state.is_playing = True
        if track_changed:
            self._load_current()

        logger.info(f"Playing: {track.artist} - {track.title}")
        await self._safe_play()

    async def resume(self) -> None:
        """Resume the current track (no-op without one)."""
        if self.state.current_track is not None:
            await self.play(self.state.current_track)

    def pause(self) -> None:
        """Pause playback; the listen so far is logged as skipped."""
        state = self.state
        state.is_playing = False
        if state.current_track is not None:
            state.status = TransportStatus.PAUSED
        self.recorder.stop(state.current_track, was_skipped=True)
        self.media.pause()

    def seek(self, time_seconds: float) -> None:
        """Jump within the current track. No effect on play history."""
        time_seconds = max(0.0, time_seconds)
        self.state.current_time_seconds = time_seconds
        self.media.seek(time_seconds)

    async def play_next(self) -> None:
        """Skip to the next (or, when shuffled, a random) queue entry."""
        if not self.state.queue:
            return
        self.recorder.stop(self.state.current_track, was_skipped=True)
        await self._advance()

    async def play_previous(self) -> None:
        """Go back one queue entry, wrapping to the last."""
        state = self.state
        if not state.queue:
            return
        self.recorder.stop(state.current_track, was_skipped=True)

        prev_index = state.queue_index - 1
        if prev_index < 0:
            prev_index = len(state.queue) - 1
        await self._go_to(prev_index)

    def toggle_shuffle(self) -> bool:
        self.state.is_shuffled = not self.state.is_shuffled
        return self.state.is_shuffled

    def toggle_repeat(self) -> RepeatMode:
        """Cycle repeat mode: off -> all -> one -> off."""
        position = REPEAT_CYCLE.index(self.state.repeat_mode)
        self.state.repeat_mode = REPEAT_CYCLE[(position + 1) % len(REPEAT_CYCLE)]
        return self.state.repeat_mode

    def set_volume_level(self, volume: int) -> None:
        """Set volume (clamped to 0-100) and unmute."""
        self.state.volume = max(0, min(100, int(volume)))
        self.state.is_muted = False
        self._apply_volume()

    def toggle_mute(self) -> bool:
        self.state.is_muted = not self.state.is_muted
        self._apply_volume()
        return self.state.is_muted

    def toggle_player_size(self) -> bool:
        self.state.is_minimized = not self.state.is_minimized
        return self.state.is_minimized

    # ------------------------------------------------------------------
    # Media events
    # ------------------------------------------------------------------

    async def handle_event(self, event: MediaEvent) -> None:
        """Apply one media event to the session.

        Raises:
            PlaybackError: If an automatic advance cannot start the next track
        """
        state = self.state

        if event.type == MediaEventType.TIMEUPDATE:
            if event.position is not None:
                state.current_time_seconds = event.position

        elif event.type == MediaEventType.LOADEDMETADATA:
            if event.duration is not None:
                state.duration_seconds = event.duration
            if state.status == TransportStatus.LOADING and not state.is_playing:
                state.status = TransportStatus.PAUSED

        elif event.type == MediaEventType.ENDED:
            await self._on_ended()

        elif event.type == MediaEventType.ERROR:
            self._on_media_error(event.error or MediaError("unknown media error"))

    async def run(self) -> None:
        """Consume media events until cancelled."""
        while True:
            event = await self.media.events.get()
            try:
                await self.handle_event(event)
            except PlaybackError as e:
                logger.error(str(e))
                if self._on_error is not None:
                    self._on_error(e)

    async def shutdown(self) -> None:
        """Stop playback (logging the current listen) and release the media."""
        if self.state.is_playing:
            self.pause()
        await self.media.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_volume(self) -> None:
        self.media.set_volume(0.0 if self.state.is_muted else self.state.volume / 100)

    def _load_current(self) -> None:
        track = self.state.current_track
        if track is None:
            return
        self.state.current_time_seconds = 0.0
        self.state.duration_seconds = track.duration
        self.state.status = TransportStatus.LOADING
        self.media.load(self._source_for(track))

    async def _safe_play(self) -> None:
        """Issue a play request once any in-flight one has settled."""
        while self._play_request is not None and not self._play_request.done():
            # asyncio.wait settles without re-raising the prior request's error
            await asyncio.wait([self._play_request])

        track = self.state.current_track
        if track is None or not self.state.is_playing:
            return

        request = asyncio.ensure_future(self.media.play())
        self._play_request = request
        try:
            await request
        except MediaAbortError:
            logger.debug(f"Play request for {track.id} superseded")
            return
        except MediaError as e:
            if self.state.current_track is track:
                self.state.is_playing = False
                self.state.status = TransportStatus.PAUSED
            raise PlaybackError(track, e) from e
        finally:
            if self._play_request is request:
                self._play_request = None

        if self.state.current_track is track and self.state.is_playing:
            self.recorder.start()
            self.state.status = TransportStatus.PLAYING

    async def _advance(self) -> None:
        """Move to the next index per shuffle/repeat, or stop at the end."""
        state = self.state
        size = len(state.queue)
        if size == 0:
            self._stop_at_end()
            return

        if state.is_shuffled:
            next_index = self._rng.randrange(size)
        else:
            next_index = state.queue_index + 1

        if next_index >= size:
            if state.repeat_mode == RepeatMode.ALL:
                next_index = 0
            else:
                self._stop_at_end()
                return

        await self._go_to(next_index)

    async def _go_to(self, index: int) -> None:
        state = self.state
        state.queue_index = index
        state.current_track = state.queue[index]
        self._load_current()
        if state.is_playing:
            await self._safe_play()

    def _stop_at_end(self) -> None:
        """Queue exhausted: keep the last track loaded, stop playing."""
        self.state.is_playing = False
        self.state.status = TransportStatus.PAUSED
        self.media.pause()
        logger.info("Reached end of queue")

    async def _on_ended(self) -> None:
        state = self.state
        # Natural end: the only stop cause that is not a skip
        self.recorder.stop(state.current_track, was_skipped=False)

        if state.repeat_mode == RepeatMode.ONE:
            self.seek(0)
            await self._safe_play()
        elif state.repeat_mode == RepeatMode.ALL or state.queue_index < len(state.queue) - 1:
            await self._advance()
        else:
            state.is_playing = False
            state.status = TransportStatus.PAUSED

    def _on_media_error(self, error: MediaError) -> None:
        if isinstance(error, MediaAbortError):
            logger.debug(f"Ignoring superseded media request: {error}")
            return

        state = self.state
        track = state.current_track
        state.is_playing = False
        if track is not None:
            state.status = TransportStatus.PAUSED
        self.recorder.stop(track, was_skipped=True)

        if track is None:
            logger.error(f"Media error with no track loaded: {error}")
            return

        playback_error = PlaybackError(track, error)
        logger.error(str(playback_error))
        if self._on_error is not None:
            self._on_error(playback_error)
