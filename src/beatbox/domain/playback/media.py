"""
Media resource boundary.

The playback session drives exactly one media resource. Transport goes in
through method calls; everything the resource observes (progress, end of
track, metadata, errors) comes back as MediaEvent messages on its event
queue, consumed only by the session.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MediaError(RuntimeError):
    """A media resource failed to load or play a source."""


class MediaAbortError(MediaError):
    """A pending play request was superseded (new source, pause, seek).

    Expected during rapid transport changes; never surfaced to users.
    """


class MediaEventType(str, Enum):
    TIMEUPDATE = "timeupdate"
    ENDED = "ended"
    LOADEDMETADATA = "loadedmetadata"
    ERROR = "error"


@dataclass(frozen=True)
class MediaEvent:
    """A single notification from the media resource."""

    type: MediaEventType
    position: Optional[float] = None  # timeupdate: seconds into the track
    duration: Optional[float] = None  # loadedmetadata: track length in seconds
    error: Optional[MediaError] = None  # error: what went wrong

    @classmethod
    def timeupdate(cls, position: float) -> "MediaEvent":
        return cls(MediaEventType.TIMEUPDATE, position=position)

    @classmethod
    def ended(cls) -> "MediaEvent":
        return cls(MediaEventType.ENDED)

    @classmethod
    def loadedmetadata(cls, duration: float) -> "MediaEvent":
        return cls(MediaEventType.LOADEDMETADATA, duration=duration)

    @classmethod
    def failed(cls, error: MediaError) -> "MediaEvent":
        return cls(MediaEventType.ERROR, error=error)


class MediaResource(ABC):
    """A single decoder/output the session owns exclusively."""

    def __init__(self) -> None:
        self.events: asyncio.Queue[MediaEvent] = asyncio.Queue()

    def emit(self, event: MediaEvent) -> None:
        """Queue an event for the session."""
        self.events.put_nowait(event)

    @abstractmethod
    def load(self, source: str) -> None:
        """Replace the current source. Any pending play() is aborted."""

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback of the loaded source.

        Raises:
            MediaAbortError: If superseded before playback started
            MediaError: If the source cannot be played
        """

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def seek(self, position: float) -> None:
        """Jump to `position` seconds."""

    @abstractmethod
    def set_volume(self, level: float) -> None:
        """Set output volume, 0.0 (silent) to 1.0 (full)."""

    async def close(self) -> None:
        """Release the underlying decoder."""
