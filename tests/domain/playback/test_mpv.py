"""Tests for the mpv media resource (IPC is mocked)."""

import asyncio
import time
from unittest.mock import patch

import pytest

from beatbox.domain.playback.media import MediaAbortError, MediaError, MediaEventType
from beatbox.domain.playback.mpv import (
    MIN_PLAYBACK_TIME,
    MpvMediaResource,
    get_mpv_property,
    is_track_finished,
    send_mpv_command,
)


def drain(media: MpvMediaResource) -> list:
    events = []
    while not media.events.empty():
        events.append(media.events.get_nowait())
    return events


@pytest.fixture
def mpv_media(tmp_path):
    media = MpvMediaResource(socket_path=str(tmp_path / "mpv.sock"))
    with patch.object(MpvMediaResource, "is_running", return_value=True), patch.object(
        MpvMediaResource, "_ensure_polling"
    ):
        yield media


class TestIsTrackFinished:
    """End-of-track detection safeguards."""

    def test_too_early(self):
        assert is_track_finished(199.9, 200.0, True, MIN_PLAYBACK_TIME - 1) is False

    def test_finished_by_position(self):
        assert is_track_finished(199.6, 200.0, False, 200.0) is True

    def test_not_finished_mid_track(self):
        assert is_track_finished(100.0, 200.0, False, 100.0) is False

    def test_finished_by_eof(self):
        assert is_track_finished(199.2, 200.0, True, 200.0) is True

    def test_suspicious_duration_requires_eof(self):
        assert is_track_finished(4.95, 5.0, False, 10.0) is False
        assert is_track_finished(4.95, 5.0, True, 10.0) is True

    def test_unknown_duration(self):
        assert is_track_finished(0.0, 0.0, True, None) is False


class TestIpcHelpers:
    def test_missing_socket(self, tmp_path):
        socket_path = str(tmp_path / "absent.sock")

        assert send_mpv_command(socket_path, ["stop"]) is False
        assert get_mpv_property(socket_path, "time-pos") is None

    def test_property_reply(self):
        with patch(
            "beatbox.domain.playback.mpv._ipc_request",
            return_value={"error": "success", "data": 12.5},
        ):
            assert get_mpv_property("/tmp/sock", "time-pos") == 12.5

    def test_failed_command(self):
        with patch(
            "beatbox.domain.playback.mpv._ipc_request",
            return_value={"error": "property unavailable"},
        ):
            assert send_mpv_command("/tmp/sock", ["seek", 10, "absolute"]) is False


class TestMpvTransport:
    """Transport calls translated to mpv commands."""

    @pytest.mark.anyio
    async def test_play_loads_then_unpauses(self, mpv_media):
        with patch(
            "beatbox.domain.playback.mpv.send_mpv_command", return_value=True
        ) as send:
            mpv_media.load("/music/a.mp3")
            await mpv_media.play()

        commands = [call.args[1] for call in send.call_args_list]
        assert commands == [
            ["loadfile", "/music/a.mp3", "replace"],
            ["set_property", "pause", False],
        ]

    @pytest.mark.anyio
    async def test_resume_does_not_reload(self, mpv_media):
        with patch(
            "beatbox.domain.playback.mpv.send_mpv_command", return_value=True
        ) as send:
            mpv_media.load("/music/a.mp3")
            await mpv_media.play()
            mpv_media.pause()
            await mpv_media.play()

        commands = [call.args[1] for call in send.call_args_list]
        assert commands.count(["loadfile", "/music/a.mp3", "replace"]) == 1

    @pytest.mark.anyio
    async def test_play_without_source(self, mpv_media):
        with pytest.raises(MediaError):
            await mpv_media.play()

    @pytest.mark.anyio
    async def test_rejected_file_raises(self, mpv_media):
        with patch("beatbox.domain.playback.mpv.send_mpv_command", return_value=False):
            mpv_media.load("/music/broken.mp3")
            with pytest.raises(MediaError) as exc_info:
                await mpv_media.play()

        assert not isinstance(exc_info.value, MediaAbortError)

    @pytest.mark.anyio
    async def test_new_source_aborts_pending_play(self, mpv_media):
        def send(socket_path, command):
            if command[0] == "loadfile":
                mpv_media.load("/music/b.mp3")
            return True

        with patch("beatbox.domain.playback.mpv.send_mpv_command", side_effect=send):
            mpv_media.load("/music/a.mp3")
            with pytest.raises(MediaAbortError):
                await mpv_media.play()

    def test_volume_is_scaled(self, mpv_media):
        with patch(
            "beatbox.domain.playback.mpv.send_mpv_command", return_value=True
        ) as send:
            mpv_media.set_volume(0.4)

        send.assert_called_once_with(
            mpv_media.socket_path, ["set_property", "volume", 40]
        )

    @pytest.mark.anyio
    async def test_transport_commands_leave_loop_free(self, mpv_media):
        with patch(
            "beatbox.domain.playback.mpv.send_mpv_command", return_value=True
        ) as send:
            mpv_media.load("/music/a.mp3")
            await mpv_media.play()
            send.reset_mock()

            mpv_media.pause()
            mpv_media.seek(30.0)
            mpv_media.set_volume(0.5)
            assert send.call_count == 0

            await mpv_media.wait_for_commands()

        commands = [call.args[1] for call in send.call_args_list]
        assert commands == [
            ["set_property", "pause", True],
            ["seek", 30.0, "absolute"],
            ["set_property", "volume", 50],
        ]

    @pytest.mark.anyio
    async def test_play_waits_for_queued_pause(self, mpv_media):
        with patch(
            "beatbox.domain.playback.mpv.send_mpv_command", return_value=True
        ) as send:
            mpv_media.load("/music/a.mp3")
            await mpv_media.play()
            mpv_media.pause()
            await mpv_media.play()

        commands = [call.args[1] for call in send.call_args_list]
        assert commands[-2:] == [
            ["set_property", "pause", True],
            ["set_property", "pause", False],
        ]


class TestPolling:
    """Property polling turned into media events."""

    async def _poll(self, mpv_media, properties):
        with patch(
            "beatbox.domain.playback.mpv.get_mpv_property",
            side_effect=lambda _socket, name: properties.get(name),
        ):
            await mpv_media.poll_once()
        return drain(mpv_media)

    @pytest.mark.anyio
    async def test_emits_metadata_progress_and_end(self, mpv_media):
        mpv_media.load("/music/a.mp3")
        mpv_media._source_sent = True
        mpv_media._started_at = time.monotonic() - 200

        events = await self._poll(
            mpv_media,
            {"time-pos": 199.8, "duration": 200.0, "eof-reached": False, "idle-active": False},
        )

        assert [e.type for e in events] == [
            MediaEventType.LOADEDMETADATA,
            MediaEventType.TIMEUPDATE,
            MediaEventType.ENDED,
        ]
        assert events[0].duration == 200.0
        assert events[1].position == 199.8

    @pytest.mark.anyio
    async def test_ended_emitted_once(self, mpv_media):
        mpv_media.load("/music/a.mp3")
        mpv_media._source_sent = True
        mpv_media._started_at = time.monotonic() - 200
        properties = {"time-pos": 200.0, "duration": 200.0, "eof-reached": True}

        first = await self._poll(mpv_media, properties)
        second = await self._poll(mpv_media, properties)

        assert MediaEventType.ENDED in [e.type for e in first]
        assert [e.type for e in second] == [MediaEventType.TIMEUPDATE]

    @pytest.mark.anyio
    async def test_idle_after_load_reports_error(self, mpv_media):
        mpv_media.load("/music/missing.mp3")
        mpv_media._source_sent = True
        mpv_media._started_at = time.monotonic() - 10

        events = await self._poll(mpv_media, {"idle-active": True})

        assert len(events) == 1
        assert events[0].type == MediaEventType.ERROR
        assert "missing.mp3" in str(events[0].error)
        assert mpv_media._source_sent is False

    @pytest.mark.anyio
    async def test_wakes_waiting_consumer_from_loop_thread(self, mpv_media):
        loop = asyncio.get_running_loop()
        loop.set_debug(True)
        try:
            mpv_media.load("/music/a.mp3")
            mpv_media._source_sent = True
            mpv_media._started_at = time.monotonic() - 50
            waiter = asyncio.create_task(mpv_media.events.get())
            await asyncio.sleep(0)

            with patch(
                "beatbox.domain.playback.mpv.get_mpv_property",
                side_effect=lambda _socket, name: {"time-pos": 42.0}.get(name),
            ):
                await mpv_media.poll_once()

            event = await asyncio.wait_for(waiter, timeout=1.0)
        finally:
            loop.set_debug(False)

        assert event.type == MediaEventType.TIMEUPDATE
        assert event.position == 42.0

    @pytest.mark.anyio
    async def test_read_overtaken_by_load_is_dropped(self, mpv_media):
        mpv_media.load("/music/a.mp3")
        mpv_media._source_sent = True
        mpv_media._started_at = time.monotonic() - 200

        def read(_socket_path):
            mpv_media.load("/music/b.mp3")
            return {"time-pos": 200.0, "duration": 200.0, "eof-reached": True}

        with patch("beatbox.domain.playback.mpv.read_playback_properties", side_effect=read):
            await mpv_media.poll_once()

        assert drain(mpv_media) == []
        assert mpv_media._ended is False
