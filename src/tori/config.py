"""Configuration persistence for tori."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

APP_NAME = "tori"


def default_playlists_dir() -> str:
    """Return the platform audio directory joined with the app folder."""
    music = os.environ.get("XDG_MUSIC_DIR")
    root = Path(music).expanduser() if music else Path.home() / "Music"
    return str(root / APP_NAME)


@dataclass(frozen=True)
class AppConfig:
    """Immutable user configuration loaded from disk."""

    playlists_dir: str = field(default_factory=default_playlists_dir)
    metadata_probe: str = "yt-dlp"
    probe_timeout: float = 120.0
    ingest_workers: int = 2


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """Return the per-user config directory for the current platform."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            root = Path(base)
        else:
            root = Path.home() / "AppData" / "Roaming"
        return _ensure_dir(root / app_name)
    elif os.name == "posix":
        if _is_macos():
            return _ensure_dir(
                Path.home() / "Library" / "Application Support" / app_name
            )
        base = os.environ.get("XDG_CONFIG_HOME")
        root = Path(base) if base else Path.home() / ".config"
        return _ensure_dir(root / app_name)
    else:
        return _ensure_dir(Path.home() / ".config" / app_name)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from disk, falling back to defaults on error."""
    path = path or get_config_path()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return AppConfig()
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to load config from %s", path)
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()
    return _config_from_mapping(raw)


def save_config(cfg: AppConfig, path: Optional[Path] = None) -> None:
    """Persist configuration to disk atomically."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(".tmp")
    data = {
        "playlists_dir": cfg.playlists_dir,
        "metadata_probe": cfg.metadata_probe,
        "probe_timeout": cfg.probe_timeout,
        "ingest_workers": cfg.ingest_workers,
    }
    temp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    os.replace(temp_path, path)


def get_config_path() -> Path:
    """Return the full config file path."""
    return get_config_dir() / "config.json"


def _ensure_dir(path: Path) -> Path:
    """Create the directory if needed and return the path."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def _is_macos() -> bool:
    """Return True when running on macOS."""
    return os.uname().sysname == "Darwin" if hasattr(os, "uname") else False


def _get_int(
    raw: dict[str, Any],
    key: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Fetch an integer value with optional clamping."""
    value = raw.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        value = default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


def _get_float(raw: dict[str, Any], key: str, default: float) -> float:
    """Fetch a positive number, falling back to the default."""
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return float(value)


def _get_str(
    raw: dict[str, Any],
    key: str,
    default: str,
    *,
    allow_empty: bool = False,
) -> str:
    """Fetch a string value, optionally allowing empty strings."""
    value = raw.get(key, default)
    if not isinstance(value, str):
        return default
    if not value and not allow_empty:
        return default
    return value


def _config_from_mapping(raw: dict[str, Any]) -> AppConfig:
    """Normalize raw JSON data into an AppConfig."""
    defaults = AppConfig()
    playlists_dir = _get_str(raw, "playlists_dir", defaults.playlists_dir)
    return AppConfig(
        playlists_dir=str(Path(playlists_dir).expanduser()),
        metadata_probe=_get_str(raw, "metadata_probe", defaults.metadata_probe),
        probe_timeout=_get_float(raw, "probe_timeout", defaults.probe_timeout),
        ingest_workers=_get_int(
            raw, "ingest_workers", defaults.ingest_workers, min_value=1, max_value=8
        ),
    )
