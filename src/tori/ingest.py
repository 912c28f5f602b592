"""Background ingestion of files, directory trees and URLs into playlists."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
import functools
import logging
import os
from pathlib import Path
import queue
import threading
from typing import TYPE_CHECKING, Callable, Optional

from tori.errors import ImplausibleSource, MetadataFetchError, StoreError
from tori.metadata import format_display_title, read_track_meta
from tori.playlist_store import PlaylistStore
from tori.song import Song, is_url

if TYPE_CHECKING:
    from tori.config import AppConfig

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".svg", ".gif", ".bmp"}


@dataclass(frozen=True)
class IngestFailure:
    source: str
    reason: str


@dataclass(frozen=True)
class SongAdded:
    """Completion notice for one ``add_song`` call."""

    playlist: str
    label: str
    added: int = 0
    failures: tuple[IngestFailure, ...] = ()
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled


@dataclass
class _Batch:
    playlist: str
    cancel: threading.Event
    added: int = 0
    failures: list[IngestFailure] = field(default_factory=list)

    def fail(self, source: str, reason: object) -> None:
        logger.warning("Skipping %s: %s", source, reason)
        self.failures.append(IngestFailure(source=source, reason=str(reason)))


class IngestJob:
    """Handle on a scheduled ingestion; cancel it or wait for its result."""

    def __init__(
        self,
        playlist: str,
        source: str,
        future: Future[SongAdded],
        cancel_event: threading.Event,
    ) -> None:
        self.playlist = playlist
        self.source = source
        self._future = future
        self._cancel = cancel_event

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> SongAdded:
        return self._future.result(timeout=timeout)


def is_plausible_source(source: str) -> bool:
    """True for URLs and for paths that exist on disk."""
    if not source:
        return False
    return is_url(source) or os.path.exists(source)


def source_label(source: str) -> str:
    """Last ``/``-separated segment of a source, for notifications."""
    trimmed = source.rstrip("/")
    return trimmed.rsplit("/", 1)[-1] or source


def song_from_file(path: Path) -> Song:
    """Local song titled from its tags (file name as fallback)."""
    meta = read_track_meta(path)
    return Song(
        title=format_display_title(path, meta),
        path=str(path),
        duration=meta.duration or 0,
    )


def _check_readable(path: Path) -> None:
    """Raise OSError for dangling links and files we may not read."""
    with open(path, "rb"):
        pass


def _display_path(path: str) -> str:
    return path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _is_utf8(path: str) -> bool:
    try:
        path.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class IngestionPipeline:
    """Resolve sources into songs off the caller's thread.

    Every ``add_song`` call puts exactly one :class:`SongAdded` on
    ``events`` when it finishes. Jobs for the same playlist run one after
    another so their entries never interleave. Failures of single entries
    are collected in the event and do not stop the batch.
    """

    def __init__(
        self,
        store: PlaylistStore,
        events: Optional[queue.Queue[SongAdded]] = None,
        *,
        max_workers: int = 2,
        url_resolver: Optional[Callable[[str], Song]] = None,
        file_resolver: Callable[[Path], Song] = song_from_file,
    ) -> None:
        self._store = store
        self.events: queue.Queue[SongAdded] = (
            events if events is not None else queue.Queue()
        )
        self._resolve_url = url_resolver or Song.from_url
        self._resolve_file = file_resolver
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="Ingest"
        )
        self._playlist_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @classmethod
    def from_config(
        cls,
        store: PlaylistStore,
        config: AppConfig,
        events: Optional[queue.Queue[SongAdded]] = None,
    ) -> "IngestionPipeline":
        resolver = functools.partial(
            Song.from_url, probe=config.metadata_probe, timeout=config.probe_timeout
        )
        return cls(
            store,
            events,
            max_workers=config.ingest_workers,
            url_resolver=resolver,
        )

    def __enter__(self) -> "IngestionPipeline":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.shutdown()

    def add_song(self, playlist: str, source: str) -> IngestJob:
        """Schedule ``source`` for ingestion into ``playlist``."""
        if not is_plausible_source(source):
            raise ImplausibleSource(source)
        self._store.playlist_path(playlist)
        cancel = threading.Event()
        future = self._executor.submit(self._run, playlist, source, cancel)
        logger.info("Adding %s to %s", source, playlist)
        return IngestJob(playlist, source, future, cancel)

    def ingest(
        self,
        playlist: str,
        source: str,
        cancel: Optional[threading.Event] = None,
    ) -> SongAdded:
        """Resolve and append ``source`` on the calling thread."""
        batch = _Batch(playlist=playlist, cancel=cancel or threading.Event())
        self._walk(source, batch)
        return SongAdded(
            playlist=playlist,
            label=source_label(source),
            added=batch.added,
            failures=tuple(batch.failures),
            cancelled=batch.cancel.is_set(),
        )

    def drain_events(self) -> list[SongAdded]:
        """Return every queued completion event without blocking."""
        drained: list[SongAdded] = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, playlist: str, source: str, cancel: threading.Event) -> SongAdded:
        try:
            with self._playlist_lock(playlist):
                event = self.ingest(playlist, source, cancel)
        except Exception as exc:
            logger.exception("Ingestion of %s into %s crashed", source, playlist)
            self.events.put(
                SongAdded(
                    playlist=playlist,
                    label=source_label(source),
                    failures=(IngestFailure(source=source, reason=str(exc)),),
                )
            )
            raise
        logger.info(
            "Added %d song(s) from %s to %s (%d failed)",
            event.added,
            source,
            playlist,
            len(event.failures),
        )
        self.events.put(event)
        return event

    def _playlist_lock(self, playlist: str) -> threading.Lock:
        with self._guard:
            lock = self._playlist_locks.get(playlist)
            if lock is None:
                lock = threading.Lock()
                self._playlist_locks[playlist] = lock
            return lock

    def _walk(self, source: str, batch: _Batch) -> None:
        if batch.cancel.is_set():
            return
        if is_url(source):
            try:
                song = self._resolve_url(source)
            except (MetadataFetchError, ValueError) as exc:
                batch.fail(source, exc)
                return
            self._append(source, song, batch)
            return
        if not _is_utf8(source):
            batch.fail(_display_path(source), "path is not valid UTF-8")
            return
        path = Path(source)
        if path.is_dir():
            # Following directory symlinks could loop forever.
            if path.is_symlink():
                logger.debug("Not following symlinked directory %s", source)
                return
            self._walk_directory(source, batch)
            return
        if path.suffix.lower() in IMAGE_EXTENSIONS:
            return
        try:
            _check_readable(path)
            song = self._resolve_file(path)
        except (OSError, ValueError) as exc:
            batch.fail(source, exc)
            return
        self._append(source, song, batch)

    def _walk_directory(self, source: str, batch: _Batch) -> None:
        try:
            names = sorted(os.listdir(source))
        except OSError as exc:
            batch.fail(source, exc)
            return
        for name in names:
            if batch.cancel.is_set():
                return
            self._walk(os.path.join(source, name), batch)

    def _append(self, source: str, song: Song, batch: _Batch) -> None:
        try:
            self._store.append_song(batch.playlist, song)
        except StoreError as exc:
            batch.fail(source, exc)
            return
        batch.added += 1
