"""Error types for the playlist store and ingestion pipeline."""

from __future__ import annotations

from typing import Optional


class ToriError(Exception):
    """Base class for every recoverable tori error."""

    category = "filesystem"


class StoreError(ToriError):
    """Raised by the playlist store and parser."""


class InvalidName(StoreError):
    category = "name"

    def __init__(self, name: str, char: Optional[str] = None) -> None:
        self.name = name
        self.char = char
        if char is None:
            super().__init__(f"Invalid name {name!r}")
        else:
            super().__init__(f"Invalid name {name!r}: contains {char!r}")


class EmptyName(StoreError):
    category = "name"

    def __init__(self) -> None:
        super().__init__("Playlist name cannot be empty")


class AlreadyExists(StoreError):
    category = "name"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Playlist {name!r} already exists")


class IndexOutOfRange(StoreError):
    category = "not_found"

    def __init__(self, playlist: str, index: int, count: int) -> None:
        self.playlist = playlist
        self.index = index
        self.count = count
        super().__init__(
            f"No song at index {index} in playlist {playlist!r} ({count} songs)"
        )


class MalformedPlaylist(StoreError):
    category = "corrupt"

    def __init__(self, reason: str, line: Optional[int] = None) -> None:
        self.reason = reason
        self.line = line
        if line is None:
            super().__init__(reason)
        else:
            super().__init__(f"line {line}: {reason}")


class PlaylistIOError(StoreError):
    """Wraps an ``OSError`` raised while touching a playlist file."""

    category = "filesystem"

    def __init__(self, action: str, path: object, error: OSError) -> None:
        self.action = action
        self.path = path
        self.error = error
        detail = error.strerror or str(error)
        super().__init__(f"Failed to {action} {path}: {detail}")


class PlaylistNotFound(PlaylistIOError):
    category = "not_found"


class ImplausibleSource(ToriError):
    category = "source"

    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(
            f"{source!r} doesn't look like a URL and is not a valid path "
            "in your filesystem"
        )


class MetadataFetchError(ToriError):
    category = "metadata"

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch metadata for {source}: {reason}")


_HINTS = {
    "name": "Pick a different name.",
    "not_found": "It may have been removed or renamed.",
    "corrupt": "The playlist file is damaged; fix it in a text editor.",
    "filesystem": "Check that the playlists directory is readable and writable.",
    "source": "Pass an existing file or directory, or an http(s) URL.",
    "metadata": "Check the URL and that yt-dlp is installed and up to date.",
}


def wrap_os_error(action: str, path: object, error: OSError) -> PlaylistIOError:
    """Map an ``OSError`` to the matching store error."""
    if isinstance(error, FileNotFoundError):
        return PlaylistNotFound(action, path, error)
    return PlaylistIOError(action, path, error)


def describe_error(exc: BaseException) -> str:
    """Return a user-facing message for an error, with a hint when known."""
    category = getattr(exc, "category", None)
    hint = _HINTS.get(category) if isinstance(category, str) else None
    if isinstance(exc, MalformedPlaylist):
        message = f"Corrupt playlist file ({exc})"
    else:
        message = str(exc) or exc.__class__.__name__
    if hint:
        return f"{message}. {hint}"
    return message
