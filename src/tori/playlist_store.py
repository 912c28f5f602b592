"""Named playlist files with surgical, index-addressed song edits."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import os
from pathlib import Path
import threading
from typing import Iterator, Union

from tori.errors import (
    AlreadyExists,
    EmptyName,
    IndexOutOfRange,
    InvalidName,
    wrap_os_error,
)
from tori.m3u import HEADER_BYTES, M3UParser, has_header
from tori.song import Song, has_line_break

logger = logging.getLogger(__name__)

PLAYLIST_EXTENSION = ".m3u8"
_FORBIDDEN_CHARS = ("/", "\\", "\x00")


def validate_name(name: str) -> None:
    """Reject names that cannot be used as a playlist file stem."""
    if not name:
        raise EmptyName()
    for char in _FORBIDDEN_CHARS:
        if char in name:
            raise InvalidName(name, char)
    if has_line_break(name) or name in {".", ".."}:
        raise InvalidName(name)


class PlaylistStore:
    """CRUD over ``<playlists_dir>/<name>.m3u8`` files.

    Song edits parse the playlist up to the affected record, then splice
    ``data[:start] + replacement + data[end:]`` so untouched records keep
    their exact bytes. Each playlist has its own re-entrant lock; every
    read-modify-write holds it.
    """

    def __init__(
        self,
        playlists_dir: Union[str, Path],
        extension: str = PLAYLIST_EXTENSION,
    ) -> None:
        self._dir = Path(playlists_dir)
        self._extension = extension
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise wrap_os_error("create directory", self._dir, exc) from exc

    @property
    def playlists_dir(self) -> Path:
        return self._dir

    def playlist_path(self, name: str) -> Path:
        validate_name(name)
        return self._dir / f"{name}{self._extension}"

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Hold the writer lock of one playlist."""
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.RLock()
                self._locks[name] = lock
        with lock:
            yield

    def exists(self, name: str) -> bool:
        return self.playlist_path(name).is_file()

    def list_playlists(self) -> list[str]:
        try:
            entries = list(self._dir.iterdir())
        except OSError as exc:
            raise wrap_os_error("list", self._dir, exc) from exc
        names = [
            entry.name[: -len(self._extension)]
            for entry in entries
            if entry.name.endswith(self._extension) and entry.is_file()
        ]
        return sorted(name for name in names if name)

    def create(self, name: str) -> None:
        path = self.playlist_path(name)
        with self.lock(name):
            try:
                with open(path, "xb"):
                    pass
            except FileExistsError:
                raise AlreadyExists(name) from None
            except OSError as exc:
                raise wrap_os_error("create", path, exc) from exc
        logger.info("Created playlist %s", name)

    def delete_playlist(self, name: str) -> None:
        path = self.playlist_path(name)
        with self.lock(name):
            try:
                path.unlink()
            except OSError as exc:
                raise wrap_os_error("delete", path, exc) from exc
        logger.info("Deleted playlist %s", name)

    def rename_playlist(self, old: str, new: str) -> None:
        validate_name(new)
        old_path = self.playlist_path(old)
        new_path = self.playlist_path(new)
        first, second = sorted((old, new))
        with self.lock(first), self.lock(second):
            if new_path.exists():
                raise AlreadyExists(new)
            try:
                os.rename(old_path, new_path)
            except OSError as exc:
                raise wrap_os_error("rename", old_path, exc) from exc
        logger.info("Renamed playlist %s to %s", old, new)

    def list_songs(self, name: str) -> list[Song]:
        return M3UParser(self._read(name)).all_songs()

    def delete_song(self, name: str, index: int) -> None:
        with self.lock(name):
            data = self._read(name)
            parser = self._seek(name, data, index)
            start = parser.cursor()
            if parser.next_song() is None:
                raise IndexOutOfRange(name, index, index)
            end = parser.cursor()
            self._write(name, data[:start] + data[end:])
        logger.debug("Deleted song %d from %s", index, name)

    def rename_song(self, name: str, index: int, new_title: str) -> None:
        if has_line_break(new_title):
            raise InvalidName(new_title)
        with self.lock(name):
            data = self._read(name)
            parser = self._seek(name, data, index)
            start = parser.cursor()
            song = parser.next_song()
            if song is None:
                raise IndexOutOfRange(name, index, index)
            end = parser.cursor()
            replacement = song.with_title(new_title).serialize().encode("utf-8")
            self._write(name, data[:start] + replacement + data[end:])
        logger.debug("Renamed song %d in %s", index, name)

    def swap_song(self, name: str, index: int) -> None:
        """Swap the song at ``index`` with the one right after it."""
        with self.lock(name):
            data = self._read(name)
            parser = self._seek(name, data, index)
            start = parser.cursor()
            first = parser.next_song()
            if first is None:
                raise IndexOutOfRange(name, index, index)
            second = parser.next_song()
            if second is None:
                raise IndexOutOfRange(name, index + 1, index + 1)
            end = parser.cursor()
            swapped = (second.serialize() + first.serialize()).encode("utf-8")
            self._write(name, data[:start] + swapped + data[end:])
        logger.debug("Swapped songs %d and %d in %s", index, index + 1, name)

    def append_song(self, name: str, song: Song) -> None:
        record = song.serialize().encode("utf-8")
        path = self.playlist_path(name)
        with self.lock(name):
            try:
                data = path.read_bytes()
            except FileNotFoundError:
                data = b""
            except OSError as exc:
                raise wrap_os_error("read", path, exc) from exc
            prefix = data
            if not has_header(data):
                prefix = HEADER_BYTES + b"\n" + data
            if not prefix.endswith(b"\n"):
                prefix += b"\n"
            if prefix == data:
                try:
                    with open(path, "ab") as handle:
                        handle.write(record)
                except OSError as exc:
                    raise wrap_os_error("write", path, exc) from exc
            else:
                self._write(name, prefix + record)
        logger.debug("Appended %s to %s", song.path, name)

    def _seek(self, name: str, data: bytes, index: int) -> M3UParser:
        """Return a parser positioned just before song ``index``."""
        if index < 0:
            raise IndexOutOfRange(name, index, 0)
        parser = M3UParser(data)
        parser.next_header()
        for count in range(index):
            if parser.next_song() is None:
                raise IndexOutOfRange(name, index, count)
        return parser

    def _read(self, name: str) -> bytes:
        path = self.playlist_path(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise wrap_os_error("read", path, exc) from exc

    def _write(self, name: str, data: bytes) -> None:
        """Replace the playlist file atomically."""
        path = self.playlist_path(name)
        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            temp_path.write_bytes(data)
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise wrap_os_error("write", path, exc) from exc
