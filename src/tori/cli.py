"""Command-line interface for tori playlists."""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys
import threading
from types import TracebackType
from typing import Callable, Iterable, Optional, Tuple

from tori.config import AppConfig, load_config
from tori.errors import ToriError, describe_error
from tori.filtered_list import FilteredList
from tori.ingest import IngestionPipeline, SongAdded
from tori.logging_setup import init_logging, set_console_level
from tori.playlist_store import PlaylistStore
from tori.song import Song, format_duration, song_matches

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="tori", description="tori playlists")
    parser.add_argument("--config", type=Path, default=None, help="Config file")
    parser.add_argument(
        "--playlists-dir",
        default=None,
        help="Directory holding the playlist files",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log progress to stderr"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("playlists", help="List playlists")

    create = sub.add_parser("create", help="Create an empty playlist")
    create.add_argument("name")

    delete = sub.add_parser("delete", help="Delete a playlist")
    delete.add_argument("name")

    rename = sub.add_parser("rename", help="Rename a playlist")
    rename.add_argument("old")
    rename.add_argument("new")

    songs = sub.add_parser("songs", help="List the songs of a playlist")
    songs.add_argument("name")
    songs.add_argument("--filter", default="", help="Only show matching songs")

    add = sub.add_parser("add", help="Add a file, directory or URL")
    add.add_argument("name")
    add.add_argument("source")

    remove = sub.add_parser("remove", help="Remove the song at INDEX")
    remove.add_argument("name")
    remove.add_argument("index", type=int)

    rename_song = sub.add_parser("rename-song", help="Retitle the song at INDEX")
    rename_song.add_argument("name")
    rename_song.add_argument("index", type=int)
    rename_song.add_argument("title")

    swap = sub.add_parser("swap", help="Swap the song at INDEX with the next one")
    swap.add_argument("name")
    swap.add_argument("index", type=int)

    return parser


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    if args.playlists_dir:
        cfg = replace(cfg, playlists_dir=args.playlists_dir)
    return cfg


def _cmd_playlists(store: PlaylistStore, _args: argparse.Namespace) -> int:
    for name in store.list_playlists():
        print(name)
    return 0


def _cmd_create(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.create(args.name)
    print(f"Created playlist {args.name}")
    return 0


def _cmd_delete(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.delete_playlist(args.name)
    print(f"Deleted playlist {args.name}")
    return 0


def _cmd_rename(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.rename_playlist(args.old, args.new)
    print(f"Renamed playlist {args.old} to {args.new}")
    return 0


def _cmd_songs(store: PlaylistStore, args: argparse.Namespace) -> int:
    songs = store.list_songs(args.name)
    shown: FilteredList[Song] = FilteredList()
    shown.filter(songs, lambda song: song_matches(song, args.filter))
    for position, song in enumerate(shown):
        index = shown.source_index(position)
        print(f"{index:>4}  {format_duration(song.duration):>8}  {song.title}")
    return 0


def _cmd_remove(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.delete_song(args.name, args.index)
    return 0


def _cmd_rename_song(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.rename_song(args.name, args.index, args.title)
    return 0


def _cmd_swap(store: PlaylistStore, args: argparse.Namespace) -> int:
    store.swap_song(args.name, args.index)
    return 0


def _report(event: SongAdded) -> int:
    if event.cancelled:
        print(f"Cancelled adding {event.label} to {event.playlist}", file=sys.stderr)
    print(f"Added {event.added} song(s) from {event.label} to {event.playlist}")
    for failure in event.failures:
        print(f"  failed: {failure.source}: {failure.reason}", file=sys.stderr)
    return 0 if event.ok else 1


def _run_add(cfg: AppConfig, store: PlaylistStore, args: argparse.Namespace) -> int:
    with IngestionPipeline.from_config(store, cfg) as pipeline:
        job = pipeline.add_song(args.name, args.source)
        print(f"Adding {args.source}...")
        try:
            event = pipeline.events.get()
        except KeyboardInterrupt:
            job.cancel()
            event = pipeline.events.get()
    return _report(event)


_COMMANDS: dict[str, Callable[[PlaylistStore, argparse.Namespace], int]] = {
    "playlists": _cmd_playlists,
    "create": _cmd_create,
    "delete": _cmd_delete,
    "rename": _cmd_rename,
    "songs": _cmd_songs,
    "remove": _cmd_remove,
    "rename-song": _cmd_rename_song,
    "swap": _cmd_swap,
}


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entry point for the CLI."""
    init_logging()

    def excepthook(exc_type, exc, tb) -> None:
        logger.exception("Uncaught exception", exc_info=(exc_type, exc, tb))

    sys.excepthook = excepthook

    def thread_hook(args: threading.ExceptHookArgs) -> None:
        exc_value = args.exc_value or RuntimeError("unknown")
        exc_info: Tuple[type[BaseException], BaseException, Optional[TracebackType]] = (
            args.exc_type,
            exc_value,
            args.exc_traceback,
        )
        thread_name = args.thread.name if args.thread else "thread"
        logger.exception("Thread exception in %s", thread_name, exc_info=exc_info)

    threading.excepthook = thread_hook

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        set_console_level(logging.DEBUG)
    else:
        set_console_level(logging.WARNING)

    try:
        cfg = _resolve_config(args)
        store = PlaylistStore(cfg.playlists_dir)
        if args.command == "add":
            exit_code = _run_add(cfg, store, args)
        else:
            exit_code = _COMMANDS[args.command](store, args)
    except ToriError as exc:
        logger.info("Command %s failed: %s", args.command, exc)
        print(describe_error(exc), file=sys.stderr)
        exit_code = 1
    logger.debug("Exit code=%s", exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
