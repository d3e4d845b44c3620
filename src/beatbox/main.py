"""
Beatbox - composition root and playback driver
"""

import asyncio
from typing import Optional

from loguru import logger

from beatbox.context import AppContext
from beatbox.core import config as config_module
from beatbox.core.config import Config
from beatbox.core.console import get_console
from beatbox.core.output import setup_from_config
from beatbox.domain.library.sqlite_store import create_sqlite_store
from beatbox.domain.library.store import Store, create_memory_store
from beatbox.domain.playback.media import MediaResource
from beatbox.domain.playback.mpv import MpvMediaResource
from beatbox.domain.playback.session import PlaybackError, RepeatMode
from beatbox.domain.playlists.crud import get_playlist_tracks


def create_store(cfg: Config) -> Store:
    """Build the store selected by [library] backend."""
    if cfg.library.backend == "memory":
        logger.info("Using in-memory store")
        return create_memory_store()
    return create_sqlite_store(config_module.get_database_path(cfg))


def create_context(cfg: Optional[Config] = None) -> AppContext:
    """Load configuration, set up logging and build the application context."""
    config_module.ensure_directories()
    cfg = cfg or config_module.load_config()
    setup_from_config(cfg.logging)
    return AppContext.create(cfg, create_store(cfg), console=get_console())


async def play_playlist(
    ctx: AppContext,
    playlist_id: str,
    shuffle: bool = False,
    repeat: RepeatMode = RepeatMode.OFF,
    media: Optional[MediaResource] = None,
) -> bool:
    """Play a playlist until its queue is exhausted.

    Args:
        ctx: Application context
        playlist_id: Playlist to play
        shuffle: Start with shuffle on
        repeat: Initial repeat mode
        media: Media resource (default: mpv configured from [playback])

    Returns:
        True if playback started, False if there was nothing playable

    Raises:
        NotFoundError: If the playlist does not exist
    """
    tracks = get_playlist_tracks(ctx.store, playlist_id)
    if not tracks:
        logger.warning(f"Playlist {playlist_id} has no tracks")
        return False

    if media is None:
        media = MpvMediaResource(
            socket_path=ctx.config.playback.mpv_socket_path,
            volume=ctx.config.playback.volume,
            poll_interval=ctx.config.playback.poll_interval,
        )

    session = ctx.attach_session(media)
    if shuffle:
        session.toggle_shuffle()
    while session.state.repeat_mode != repeat:
        session.toggle_repeat()

    pump = asyncio.create_task(session.run())
    try:
        await session.play(tracks[0], queue=tracks)
        # The pump advances through the queue; playback ends when it stops playing
        while session.state.is_playing:
            await asyncio.sleep(ctx.config.playback.poll_interval)
    except PlaybackError as e:
        logger.error(str(e))
        return False
    finally:
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        await session.shutdown()

    return True
