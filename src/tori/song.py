"""Song value type and its M3U record form."""

from __future__ import annotations

from dataclasses import dataclass, replace
import json
import logging
import os
import subprocess
from typing import Any, Optional, Union

from tori.errors import MetadataFetchError

logger = logging.getLogger(__name__)

EXTINF_PREFIX = "#EXTINF:"
URL_SCHEMES = ("http://", "https://", "ytdl://")
DEFAULT_PROBE = "yt-dlp"
DEFAULT_PROBE_TIMEOUT = 120.0


@dataclass(frozen=True)
class Song:
    """A playlist entry: display title, duration in seconds and path or URL."""

    title: str
    path: str
    duration: int = 0

    def __post_init__(self) -> None:
        if not self.path.strip():
            raise ValueError("Song path cannot be empty")
        # The path line is read back stripped, and "#" starts a comment.
        if self.path != self.path.strip() or self.path.startswith("#"):
            raise ValueError(f"Song path cannot be stored: {self.path!r}")
        if has_line_break(self.path) or has_line_break(self.title):
            raise ValueError(f"Song fields cannot contain line breaks: {self.path!r}")
        if self.duration < 0:
            raise ValueError(f"Song duration cannot be negative: {self.duration}")

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike[str]]) -> "Song":
        """Build a song for a local file, titled with its file name."""
        text = os.fspath(path)
        name = os.path.basename(text.rstrip("/\\")) or text
        return cls(title=name, path=text)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        probe: str = DEFAULT_PROBE,
        timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT,
    ) -> "Song":
        """Probe a remote source with yt-dlp. Blocks until the probe exits."""
        metadata = _run_probe(url, probe=probe, timeout=timeout)
        title = metadata.get("title")
        if not isinstance(title, str) or not title.strip():
            raise MetadataFetchError(url, "probe output has no title")
        duration = metadata.get("duration")
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            raise MetadataFetchError(url, "probe output has no duration")
        if duration < 0:
            raise MetadataFetchError(url, f"negative duration {duration}")
        return cls(title=" ".join(title.split()), duration=int(duration), path=url)

    def with_title(self, title: str) -> "Song":
        return replace(self, title=title)

    def serialize(self) -> str:
        return f"{EXTINF_PREFIX}{self.duration},{self.title}\n{self.path}\n"


def has_line_break(text: str) -> bool:
    return "\n" in text or "\r" in text


def is_url(source: str) -> bool:
    return source.startswith(URL_SCHEMES)


def _probe_target(url: str) -> str:
    # mpv-style "ytdl://" sources name a yt-dlp URL or search term.
    if url.startswith("ytdl://"):
        return url[len("ytdl://") :]
    return url


def _run_probe(url: str, *, probe: str, timeout: Optional[float]) -> dict[str, Any]:
    command = [probe, "--dump-json", _probe_target(url)]
    logger.debug("Probing %s", url)
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise MetadataFetchError(url, f"{probe} is not installed") from exc
    except subprocess.TimeoutExpired as exc:
        raise MetadataFetchError(url, f"{probe} timed out") from exc
    except OSError as exc:
        raise MetadataFetchError(url, str(exc)) from exc
    if completed.returncode != 0:
        stderr_text = (completed.stderr or "").strip()
        reason = f"{probe} exited with status {completed.returncode}"
        if stderr_text:
            reason = f"{reason}: {stderr_text.splitlines()[-1]}"
        raise MetadataFetchError(url, reason)
    try:
        payload = json.loads(completed.stdout or "")
    except json.JSONDecodeError as exc:
        raise MetadataFetchError(url, f"{probe} returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise MetadataFetchError(url, f"{probe} returned unexpected output")
    return payload


def format_duration(seconds: int) -> str:
    """Format whole seconds as ``m:ss`` (or ``h:mm:ss`` past an hour)."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def song_matches(song: Song, query: str) -> bool:
    """Case-insensitive substring match on title or path."""
    if not query:
        return True
    needle = query.casefold()
    return needle in song.title.casefold() or needle in song.path.casefold()
