"""Audio metadata helpers for local songs."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackMeta:
    artist: str | None
    title: str | None
    duration: int | None = None


_EMPTY = TrackMeta(artist=None, title=None)


def _extract_text(value: object | None) -> str | None:
    if value is None:
        return None
    if hasattr(value, "text"):
        try:
            value = value.text
        except Exception:
            value = value
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    if isinstance(value, bytes):
        text = value.decode("utf-8", errors="replace")
    else:
        text = str(value)
    # Tags end up on a single playlist line.
    text = " ".join(text.split())
    return text or None


def _read_tag(tags: object | None, keys: tuple[str, ...]) -> str | None:
    if tags is None:
        return None
    getter = getattr(tags, "get", None)
    if getter is None:
        return None
    for key in keys:
        try:
            value = getter(key)
        except Exception:
            continue
        text = _extract_text(value)
        if text:
            return text
    return None


def _read_duration(audio: object) -> int | None:
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if not isinstance(length, (int, float)) or length < 0:
        return None
    return int(length)


def read_track_meta(path: Path) -> TrackMeta:
    """Best-effort metadata extraction with safe fallbacks."""
    try:
        from mutagen import File as MutagenFile
    except Exception:
        return _EMPTY
    try:
        audio = MutagenFile(path)
    except Exception:
        logger.debug("mutagen could not read %s", path, exc_info=True)
        return _EMPTY
    if not audio:
        return _EMPTY
    tags = getattr(audio, "tags", None)
    artist = _read_tag(tags, ("artist", "ARTIST", "TPE1", "TPE2", "\xa9ART", "aART"))
    title = _read_tag(tags, ("title", "TITLE", "TIT2", "\xa9nam"))
    return TrackMeta(artist=artist, title=title, duration=_read_duration(audio))


def format_display_title(path: Path, meta: TrackMeta | None = None) -> str:
    if meta and meta.title:
        if meta.artist:
            return f"{meta.artist} – {meta.title}"
        return meta.title
    return path.name
