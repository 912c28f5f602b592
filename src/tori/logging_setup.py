"""Logging setup for tori.

Everything goes to a rotating ``tori.log``; stderr gets a terse copy whose
level the CLI lowers with ``-v``. Ingestion workers are named ``Ingest_N``,
so the file format carries the thread name.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "tori.log"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"

_FILE_HANDLER = "tori-file"
_CONSOLE_HANDLER = "tori-console"


def log_dir() -> Path:
    """Per-user log directory, ``TORI_LOG_DIR`` first."""
    override = os.getenv("TORI_LOG_DIR")
    if override:
        return Path(override).expanduser()
    local_appdata = os.getenv("LOCALAPPDATA")
    if local_appdata:
        return Path(local_appdata) / "tori" / "logs"
    state_home = os.getenv("XDG_STATE_HOME")
    if state_home:
        return Path(state_home) / "tori" / "logs"
    return Path.home() / ".tori" / "logs"


def level_from_env(default: int = logging.INFO) -> int:
    """Parse ``TORI_LOG_LEVEL`` as a level name or number."""
    raw = os.getenv("TORI_LOG_LEVEL", "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


def _named_handler(root: logging.Logger, name: str) -> Optional[logging.Handler]:
    for handler in root.handlers:
        if handler.get_name() == name:
            return handler
    return None


def _console_handler(root: logging.Logger, level: int) -> None:
    handler = _named_handler(root, _CONSOLE_HANDLER)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(_CONSOLE_HANDLER)
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        root.addHandler(handler)
    handler.setLevel(level)


def _file_handler(root: logging.Logger, path: Path, level: int) -> None:
    handler = _named_handler(root, _FILE_HANDLER)
    if handler is None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            path, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
        )
        handler.set_name(_FILE_HANDLER)
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(handler)
    handler.setLevel(level)


def init_logging(directory: Optional[Path] = None) -> Optional[Path]:
    """Install the tori handlers on the root logger.

    Safe to call repeatedly. Returns the log file path, or None when the log
    directory is not writable and only stderr logging is active.
    """
    level = level_from_env()
    root = logging.getLogger()
    root.setLevel(level)
    _console_handler(root, level)

    path = (directory or log_dir()) / LOG_FILE_NAME
    try:
        _file_handler(root, path, level)
    except OSError as exc:
        logging.getLogger(__name__).warning(
            "File logging disabled, cannot open %s: %s", path, exc
        )
        return None
    logging.getLogger(__name__).debug("Logging to %s", path)
    return path


def set_console_level(level: int) -> None:
    """Adjust the stderr handler installed by :func:`init_logging`."""
    handler = _named_handler(logging.getLogger(), _CONSOLE_HANDLER)
    if handler is not None:
        handler.setLevel(level)
