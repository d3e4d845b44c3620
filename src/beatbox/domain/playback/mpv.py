"""
MPV media resource over JSON IPC.

mpv runs as an idle child process; commands go over its unix socket one
request per connection. Socket I/O happens on worker threads; events are
emitted on the event loop. A background poll task reads playback
properties and turns them into MediaEvents for the session.
"""

import asyncio
import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .media import MediaAbortError, MediaError, MediaEvent, MediaResource

# Durations below this indicate broken metadata (seconds)
MIN_VALID_DURATION = 10.0

# Minimum playback time before a track may count as finished (seconds)
MIN_PLAYBACK_TIME = 3.0

SOCKET_TIMEOUT = 2.0
STARTUP_TIMEOUT = 5.0


def check_mpv_available() -> bool:
    """Check if MPV is available on the system."""
    try:
        result = subprocess.run(
            ["mpv", "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def default_socket_path() -> str:
    return str(Path(tempfile.gettempdir()) / f"beatbox-mpv-{os.getpid()}")


def _ipc_request(socket_path: Optional[str], command: list[Any]) -> Optional[dict[str, Any]]:
    """Send one IPC command and return the decoded reply (None on any failure)."""
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(SOCKET_TIMEOUT)
            sock.connect(socket_path)
            sock.sendall((json.dumps({"command": command}) + "\n").encode("utf-8"))
            response = sock.recv(4096).decode("utf-8").strip()
    except OSError:
        return None

    # mpv may interleave async events; the reply is the line carrying "error"
    for line in response.splitlines():
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


def send_mpv_command(socket_path: Optional[str], command: list[Any]) -> bool:
    """Send a command to MPV; True when MPV reports success."""
    reply = _ipc_request(socket_path, command)
    return reply is not None and reply.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from MPV (None when unavailable)."""
    reply = _ipc_request(socket_path, ["get_property", property_name])
    if reply is not None and reply.get("error") == "success":
        return reply.get("data")
    return None


PLAYBACK_PROPERTIES = ("time-pos", "duration", "eof-reached", "idle-active")


def read_playback_properties(socket_path: Optional[str]) -> dict[str, Any]:
    """Read the properties polling needs (blocking; values may be None)."""
    return {name: get_mpv_property(socket_path, name) for name in PLAYBACK_PROPERTIES}


def is_track_finished(
    position: float, duration: float, eof: Optional[bool], playback_elapsed: Optional[float]
) -> bool:
    """Decide whether the loaded track reached its natural end.

    Safeguards:
    1. Minimum playback time (prevents incomplete metadata issues)
    2. Duration sanity check (detects corrupted/incomplete metadata)
    3. Position-based completion check
    4. EOF flag validation (with position confirmation)
    """
    if playback_elapsed is not None and playback_elapsed < MIN_PLAYBACK_TIME:
        return False

    if 0 < duration < MIN_VALID_DURATION:
        # Only trust eof when position is very close
        return eof is True and position >= duration - 0.1

    finished_by_position = duration > 0 and position >= duration - 0.5
    finished_by_eof = eof is True and duration > 0 and position >= duration - 1.0
    return finished_by_position or finished_by_eof


class MpvMediaResource(MediaResource):
    """MediaResource backed by an mpv child process."""

    def __init__(
        self,
        socket_path: Optional[str] = None,
        volume: int = 75,
        poll_interval: float = 0.25,
    ):
        super().__init__()
        self.socket_path = socket_path or default_socket_path()
        self.poll_interval = poll_interval
        self._volume = max(0, min(100, volume))
        self._process: Optional[subprocess.Popen] = None
        self._poll_task: Optional[asyncio.Task] = None
        # Tail of the pause/seek/volume command chain
        self._command_task: Optional[asyncio.Task] = None

        self._source: Optional[str] = None
        self._source_sent = False
        # Bumped by load/pause/seek; a play() that sees a newer value was superseded
        self._generation = 0
        self._started_at: Optional[float] = None
        self._reported_duration: Optional[float] = None
        self._ended = False

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------

    def is_running(self) -> bool:
        if self._process is None or self._process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    def start(self) -> None:
        """Start mpv in idle mode and wait for its IPC socket.

        Raises:
            MediaError: If mpv cannot be started or does not answer
        """
        if self.is_running():
            return

        logger.info(f"Starting MPV player with socket: {self.socket_path}")
        if os.path.exists(self.socket_path):
            logger.debug(f"Removing existing socket: {self.socket_path}")
            os.unlink(self.socket_path)

        cmd = [
            "mpv",
            "--idle=yes",
            "--no-video",
            "--no-terminal",
            f"--input-ipc-server={self.socket_path}",
            f"--volume={self._volume}",
            "--keep-open=yes",
            "--load-scripts=no",
        ]
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            raise MediaError(f"Failed to start MPV: {e}") from e

        deadline = time.monotonic() + STARTUP_TIMEOUT
        while not os.path.exists(self.socket_path):
            if time.monotonic() > deadline:
                self._kill()
                raise MediaError(f"MPV socket creation timeout after {STARTUP_TIMEOUT}s")
            time.sleep(0.1)

        if not send_mpv_command(self.socket_path, ["get_property", "idle-active"]):
            self._kill()
            raise MediaError("MPV socket connection test failed")
        logger.info("MPV started successfully")

    def _kill(self) -> None:
        if self._process is not None:
            try:
                self._process.kill()
                self._process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"Error stopping MPV: {e}")
            self._process = None

        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError as e:
                logger.warning(f"Could not remove MPV socket: {e}")

    async def close(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.wait_for_commands()
        self._kill()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def load(self, source: str) -> None:
        self._generation += 1
        self._source = source
        self._source_sent = False
        self._started_at = None
        self._reported_duration = None
        self._ended = False

    async def play(self) -> None:
        generation = self._generation
        if self._source is None:
            raise MediaError("No source loaded")

        if not self.is_running():
            await asyncio.to_thread(self.start)
        self._ensure_polling()
        await self.wait_for_commands()
        if generation != self._generation:
            raise MediaAbortError("Play request superseded")

        if not self._source_sent:
            ok = await asyncio.to_thread(
                send_mpv_command, self.socket_path, ["loadfile", self._source, "replace"]
            )
            if generation != self._generation:
                raise MediaAbortError(f"Load of {self._source} superseded")
            if not ok:
                raise MediaError(f"MPV rejected {self._source}")
            self._source_sent = True
            logger.debug(f"Loaded into MPV: {self._source}")

        ok = await asyncio.to_thread(
            send_mpv_command, self.socket_path, ["set_property", "pause", False]
        )
        if generation != self._generation:
            raise MediaAbortError("Play request superseded")
        if not ok:
            raise MediaError("MPV did not start playback")

        if self._started_at is None:
            self._started_at = time.monotonic()

    def pause(self) -> None:
        self._generation += 1
        self._send_in_background(["set_property", "pause", True])

    def seek(self, position: float) -> None:
        self._generation += 1
        self._ended = False
        if self._source_sent:
            self._send_in_background(["seek", position, "absolute"])

    def set_volume(self, level: float) -> None:
        self._volume = max(0, min(100, round(level * 100)))
        self._send_in_background(["set_property", "volume", self._volume])

    def _send_in_background(self, command: list[Any]) -> None:
        """Send a fire-and-forget command without blocking the event loop.

        Commands run in issue order on a worker thread. Outside a running
        loop the command is sent inline.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            send_mpv_command(self.socket_path, command)
            return
        self._command_task = loop.create_task(
            self._send_after(self._command_task, command)
        )

    async def _send_after(self, previous: Optional[asyncio.Task], command: list[Any]) -> None:
        if previous is not None:
            await asyncio.wait([previous])
        if not await asyncio.to_thread(send_mpv_command, self.socket_path, command):
            logger.debug(f"MPV command failed: {command}")

    async def wait_for_commands(self) -> None:
        """Wait until every background command has been sent."""
        if self._command_task is not None:
            await asyncio.wait([self._command_task])

    # ------------------------------------------------------------------
    # Event polling
    # ------------------------------------------------------------------

    def _ensure_polling(self) -> None:
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            if not self._source_sent:
                continue
            if not self.is_running():
                self.emit(MediaEvent.failed(MediaError("MPV process exited")))
                return
            await self.poll_once()

    async def poll_once(self) -> None:
        """Read playback properties once and emit the resulting events.

        The IPC reads run on a worker thread; state changes and events
        happen back on the loop. A read that a load/pause/seek overtook is
        dropped.
        """
        generation = self._generation
        properties = await asyncio.to_thread(read_playback_properties, self.socket_path)
        if generation != self._generation:
            logger.debug("Discarding MPV poll overtaken by a transport change")
            return
        self._apply_properties(properties)

    def _apply_properties(self, properties: dict[str, Any]) -> None:
        position = properties.get("time-pos")
        duration = properties.get("duration")
        eof = properties.get("eof-reached")
        idle = properties.get("idle-active")

        elapsed = None
        if self._started_at is not None:
            elapsed = time.monotonic() - self._started_at

        # With --keep-open, mpv only goes idle when a file failed to open
        if idle is True and not self._ended and elapsed is not None and elapsed >= MIN_PLAYBACK_TIME:
            self._source_sent = False
            self.emit(MediaEvent.failed(MediaError(f"MPV could not play {self._source}")))
            return

        if duration and duration != self._reported_duration:
            self._reported_duration = duration
            self.emit(MediaEvent.loadedmetadata(float(duration)))

        if position is not None:
            self.emit(MediaEvent.timeupdate(float(position)))

        if not self._ended and is_track_finished(position or 0.0, duration or 0.0, eof, elapsed):
            self._ended = True
            logger.debug(f"Track finished: {self._source}")
            self.emit(MediaEvent.ended())
