"""Shared fixtures: in-memory store, fake media resource and a fake clock."""

import random
from typing import Optional

import pytest

from beatbox.domain.library.models import Track
from beatbox.domain.library.store import Store, create_memory_store
from beatbox.domain.playback.history import PlayHistoryRecorder
from beatbox.domain.playback.media import MediaError, MediaEvent, MediaResource
from beatbox.domain.playback.session import PlaybackSession


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMediaResource(MediaResource):
    """Records transport calls; play() resolves immediately unless told otherwise."""

    def __init__(self):
        super().__init__()
        self.loaded: list[str] = []
        self.play_calls = 0
        self.pause_calls = 0
        self.seeks: list[float] = []
        self.volume: Optional[float] = None
        self.closed = False

        # Raised (once) by the next play() call
        self.play_error: Optional[MediaError] = None
        # When set, play() waits for it before resolving
        self.gate = None
        # Emit `ended` as soon as a play resolves
        self.auto_end = False

        self.in_flight = 0
        self.max_in_flight = 0

    def load(self, source: str) -> None:
        self.loaded.append(source)

    async def play(self) -> None:
        self.play_calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.play_error is not None:
                error, self.play_error = self.play_error, None
                raise error
        finally:
            self.in_flight -= 1
        if self.auto_end:
            self.emit(MediaEvent.ended())

    def pause(self) -> None:
        self.pause_calls += 1

    def seek(self, position: float) -> None:
        self.seeks.append(position)

    def set_volume(self, level: float) -> None:
        self.volume = level

    async def close(self) -> None:
        self.closed = True


def make_track(track_id: str, **overrides) -> Track:
    values = {
        "id": track_id,
        "title": f"Song {track_id}",
        "artist": "Test Artist",
        "album": "Test Album",
        "genre": "Rock",
        "year": 2020,
        "duration": 200.0,
        "file_format": "mp3",
        "file_size": 4_000_000,
        "file_path": f"/music/{track_id}.mp3",
    }
    values.update(overrides)
    return Track(**values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store() -> Store:
    return create_memory_store()


@pytest.fixture
def tracks(store: Store) -> list[Track]:
    """Three stored tracks, all 200 seconds long."""
    return [
        store.tracks.create(make_track(track_id).to_dict())
        for track_id in ("t1", "t2", "t3")
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder(store: Store, clock: FakeClock) -> PlayHistoryRecorder:
    return PlayHistoryRecorder(store, clock=clock)


@pytest.fixture
def media() -> FakeMediaResource:
    return FakeMediaResource()


@pytest.fixture
def session(media: FakeMediaResource, recorder: PlayHistoryRecorder) -> PlaybackSession:
    return PlaybackSession(media, recorder, rng=random.Random(42))
