"""Cursor-tracking parser for extended M3U playlists.

The parser works on a byte snapshot of a playlist file. After every parsed
unit (the ``#EXTM3U`` header or one song record) :meth:`M3UParser.cursor`
returns the byte offset just past it, so callers can slice the original
snapshot and rewrite a single record while keeping every other byte intact.
Offsets are only meaningful for the snapshot they were computed from.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Iterator, Optional, Union

from tori.errors import MalformedPlaylist
from tori.song import EXTINF_PREFIX, Song

HEADER = "#EXTM3U"
HEADER_BYTES = HEADER.encode("ascii")
_BOM = b"\xef\xbb\xbf"


class M3UParser:
    """Single-pass reader over an in-memory playlist snapshot."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0
        self._line = 0

    @classmethod
    def from_path(cls, path: Path) -> "M3UParser":
        return cls(path.read_bytes())

    @property
    def data(self) -> bytes:
        return self._data

    def cursor(self) -> int:
        """Byte offset of everything consumed so far."""
        return self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    def next_header(self, required: bool = False) -> bool:
        """Consume the ``#EXTM3U`` line at the cursor, if there is one.

        Blank lines before the header are consumed with it. When there is no
        header the cursor does not move.
        """
        pos = self._pos
        line_no = self._line
        while True:
            found = self._line_at(pos)
            if found is None:
                break
            raw, nxt = found
            line_no += 1
            if pos == 0 and raw.startswith(_BOM):
                raw = raw[len(_BOM) :]
            text = raw.strip()
            if not text:
                pos = nxt
                continue
            if text.startswith(HEADER_BYTES):
                self._pos = nxt
                self._line = line_no
                return True
            break
        if required and self._data[self._pos :].strip():
            raise MalformedPlaylist("missing #EXTM3U header", line_no)
        return False

    def next_song(self) -> Optional[Song]:
        """Consume the next song record, or return None at end of input.

        Blank lines and comment lines before a record belong to that record.
        """
        pos = self._pos
        line_no = self._line
        while True:
            found = self._line_at(pos)
            if found is None:
                return None
            raw, nxt = found
            line_no += 1
            line = _decode(raw, line_no)
            text = line.strip()
            if not text:
                pos = nxt
                continue
            if text.startswith(EXTINF_PREFIX):
                song, end = self._read_record(line.lstrip(), nxt, line_no)
                self._pos = end
                self._line = line_no + 1
                return song
            if text.startswith("#"):
                pos = nxt
                continue
            # Plain M3U entry without an #EXTINF line.
            song = _make_song(_last_segment(text), text, 0, line_no)
            self._pos = nxt
            self._line = line_no
            return song

    def songs(self) -> Iterator[Song]:
        while True:
            song = self.next_song()
            if song is None:
                return
            yield song

    def all_songs(self) -> list[Song]:
        """Parse the header and every song, in file order."""
        self.next_header()
        return list(self.songs())

    def _read_record(self, info: str, pos: int, line_no: int) -> tuple[Song, int]:
        duration, title = _parse_extinf(info, line_no)
        found = self._line_at(pos)
        if found is None:
            raise MalformedPlaylist("#EXTINF line is not followed by a path", line_no)
        raw, nxt = found
        path = _decode(raw, line_no + 1).strip()
        if not path or path.startswith("#"):
            raise MalformedPlaylist("expected a path after #EXTINF", line_no + 1)
        return _make_song(title, path, duration, line_no), nxt

    def _line_at(self, pos: int) -> Optional[tuple[bytes, int]]:
        """Return the raw line starting at ``pos`` and the offset after it."""
        if pos >= len(self._data):
            return None
        end = self._data.find(b"\n", pos)
        nxt = len(self._data) if end == -1 else end + 1
        return self._data[pos:nxt], nxt


def parse_m3u(data: Union[bytes, str]) -> list[Song]:
    """Parse a whole playlist into songs."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return M3UParser(data).all_songs()


def has_header(data: bytes) -> bool:
    """Whether the snapshot opens with an ``#EXTM3U`` line."""
    return M3UParser(data).next_header()


def _decode(raw: bytes, line_no: int) -> str:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPlaylist("line is not valid UTF-8", line_no) from exc
    return text.rstrip("\r\n")


def _parse_extinf(line: str, line_no: int) -> tuple[int, str]:
    body = line[len(EXTINF_PREFIX) :]
    head, sep, title = body.partition(",")
    if not sep:
        raise MalformedPlaylist("#EXTINF line has no title", line_no)
    # Extended attributes may follow the duration ("-1 tvg-id=...").
    parts = head.split()
    token = parts[0] if parts else ""
    try:
        value = float(token)
    except ValueError:
        raise MalformedPlaylist(f"invalid duration {token!r}", line_no) from None
    if not math.isfinite(value) or value < 0:
        raise MalformedPlaylist(f"invalid duration {token!r}", line_no)
    return int(value), title


def _make_song(title: str, path: str, duration: int, line_no: int) -> Song:
    try:
        return Song(title=title, path=path, duration=duration)
    except ValueError as exc:
        raise MalformedPlaylist(str(exc), line_no) from exc


def _last_segment(path: str) -> str:
    trimmed = path.rstrip("/\\")
    for sep in ("/", "\\"):
        trimmed = trimmed.rsplit(sep, 1)[-1]
    return trimmed or path
