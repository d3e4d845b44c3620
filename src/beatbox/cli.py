"""
Beatbox CLI - Entry point

Subcommands run one operation against the configured library and exit.
"""

import argparse
import asyncio
import sys
from typing import Optional

from rich.table import Table

from beatbox.context import AppContext
from beatbox.core.console import get_console, safe_print
from beatbox.core.output import log
from beatbox.domain.library.models import Rule, RuleSet
from beatbox.domain.library.stats import format_bytes, format_duration, get_listening_stats
from beatbox.domain.library.store import NotFoundError
from beatbox.domain.playback.session import RepeatMode
from beatbox.domain.playlists.crud import create_smart_playlist
from beatbox.domain.playlists.smart import MaintenanceError, update_smart_playlists


def run_update_smart_playlists(ctx: AppContext) -> int:
    """Run the smart playlist maintenance pass and print its summary."""
    try:
        summary = update_smart_playlists(ctx.store)
    except MaintenanceError as e:
        log(f"Smart playlist update failed: {e}", level="error")
        return 1

    log(summary.message)
    return 0 if summary.failed_count == 0 else 1


def run_stats(ctx: AppContext) -> int:
    """Print listening statistics."""
    console = ctx.console or get_console()
    stats = get_listening_stats(ctx.store)

    summary = Table(title="Listening Stats", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Total plays", str(stats.total_plays))
    summary.add_row("Listening time", format_duration(stats.total_listening_seconds))
    summary.add_row("Tracks", str(stats.total_tracks))
    summary.add_row("Playlists", str(stats.total_playlists))
    summary.add_row("Library size", format_bytes(stats.library_size_bytes))
    summary.add_row("Skip rate", f"{stats.skip_rate:.0%}")
    console.print(summary)

    for title, entries in (
        ("Top Tracks (All Time)", stats.top_tracks_all_time),
        ("Top Tracks (This Week)", stats.top_tracks_weekly),
    ):
        if not entries:
            continue
        table = Table(title=title)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Track")
        table.add_column("Plays", justify="right")
        for rank, entry in enumerate(entries, start=1):
            table.add_row(
                str(rank),
                f"{entry.track.artist} - {entry.track.title}",
                str(entry.play_count),
            )
        console.print(table)

    return 0


def run_list_playlists(ctx: AppContext) -> int:
    """Print every playlist with its track count."""
    console = ctx.console or get_console()
    playlists = ctx.store.playlists.list(sort="name")
    if not playlists:
        safe_print("No playlists yet.", style="yellow")
        return 0

    table = Table(title="Playlists")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Tracks", justify="right")
    for playlist in playlists:
        table.add_row(
            playlist.id,
            playlist.name,
            "smart" if playlist.is_smart else "manual",
            str(len(playlist.track_ids)),
        )
    console.print(table)
    return 0


def parse_rules(raw_rules: list[list[str]], match_any: bool) -> RuleSet:
    """Turn `--rule FIELD OPERATOR [VALUE]` arguments into a RuleSet.

    Raises:
        ValueError: If a rule has the wrong number of parts
    """
    rules = []
    for parts in raw_rules:
        if len(parts) not in (2, 3):
            raise ValueError(
                f"--rule expects FIELD OPERATOR [VALUE], got: {' '.join(parts)}"
            )
        value = parts[2] if len(parts) == 3 else None
        rules.append(Rule.from_dict({"field": parts[0], "operator": parts[1], "value": value}))
    return RuleSet(match_all=not match_any, rules=tuple(rules))


def run_create_smart(
    ctx: AppContext, name: str, raw_rules: list[list[str]], match_any: bool
) -> int:
    """Create and materialize a smart playlist."""
    try:
        rule_set = parse_rules(raw_rules, match_any)
        playlist = create_smart_playlist(ctx.store, name, rule_set)
    except ValueError as e:
        log(f"Error: {e}", level="error")
        return 1

    safe_print(
        f"✓ Created smart playlist '{playlist.name}' ({playlist.id}) "
        f"with {len(playlist.track_ids)} tracks",
        style="green",
    )
    return 0


def run_play(ctx: AppContext, playlist_id: str, shuffle: bool, repeat: str) -> int:
    """Play a playlist through mpv until the queue ends."""
    from beatbox.domain.playback.mpv import check_mpv_available
    from beatbox.main import play_playlist

    if not check_mpv_available():
        log("mpv is not installed or not on PATH", level="error")
        return 1

    try:
        started = asyncio.run(
            play_playlist(ctx, playlist_id, shuffle=shuffle, repeat=RepeatMode(repeat))
        )
    except NotFoundError as e:
        log(f"Error: {e}", level="error")
        return 1
    except KeyboardInterrupt:
        safe_print("\nStopped.", style="dim")
        return 0

    return 0 if started else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beatbox",
        description="Beatbox - music library playback and smart playlists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    subparsers.add_parser(
        "update-smart-playlists", help="Recompute every smart playlist"
    )
    subparsers.add_parser("stats", help="Show listening statistics")
    subparsers.add_parser("playlists", help="List playlists")

    smart_parser = subparsers.add_parser(
        "create-smart", help="Create a smart playlist from rules"
    )
    smart_parser.add_argument("name", help="Playlist name")
    smart_parser.add_argument(
        "--rule",
        dest="rules",
        nargs="+",
        action="append",
        required=True,
        metavar="PART",
        help="FIELD OPERATOR [VALUE], e.g. --rule genre is Rock (repeatable)",
    )
    smart_parser.add_argument(
        "--any",
        action="store_true",
        help="Match tracks satisfying any rule (default: all rules)",
    )

    play_parser = subparsers.add_parser("play", help="Play a playlist through mpv")
    play_parser.add_argument("playlist_id", help="Playlist ID (see 'beatbox playlists')")
    play_parser.add_argument("--shuffle", action="store_true", help="Shuffle the queue")
    play_parser.add_argument(
        "--repeat",
        choices=[mode.value for mode in RepeatMode],
        default=RepeatMode.OFF.value,
        help="Repeat mode (default: off)",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the beatbox command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(0)

    from beatbox.main import create_context

    ctx = create_context()

    if args.subcommand == "update-smart-playlists":
        sys.exit(run_update_smart_playlists(ctx))

    elif args.subcommand == "stats":
        sys.exit(run_stats(ctx))

    elif args.subcommand == "playlists":
        sys.exit(run_list_playlists(ctx))

    elif args.subcommand == "create-smart":
        sys.exit(run_create_smart(ctx, args.name, args.rules, args.any))

    elif args.subcommand == "play":
        sys.exit(run_play(ctx, args.playlist_id, args.shuffle, args.repeat))


if __name__ == "__main__":
    main()
