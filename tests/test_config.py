"""Tests for config persistence."""

from __future__ import annotations

import json
import os
from pathlib import Path

from tori import config


def test_load_defaults_when_missing(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "get_config_dir", lambda: tmp_path)
    loaded = config.load_config()
    assert loaded == config.AppConfig()


def test_load_defaults_when_corrupt(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json", encoding="utf-8")
    assert config.load_config(config_path) == config.AppConfig()


def test_load_defaults_when_not_a_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]", encoding="utf-8")
    assert config.load_config(config_path) == config.AppConfig()


def test_save_load_round_trip(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "get_config_dir", lambda: tmp_path)
    original = config.AppConfig(
        playlists_dir=str(tmp_path / "playlists"),
        metadata_probe="yt-dlp-nightly",
        probe_timeout=30.0,
        ingest_workers=4,
    )
    config.save_config(original)
    assert config.load_config() == original


def test_save_config_atomic_write(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "get_config_dir", lambda: tmp_path)
    replaced: list[tuple[Path, Path]] = []

    def fake_replace(src: Path, dest: Path) -> None:
        replaced.append((src, dest))
        assert src.exists()
        data = json.loads(src.read_text(encoding="utf-8"))
        assert "playlists_dir" in data
        dest.write_text(json.dumps(data), encoding="utf-8")

    monkeypatch.setattr(config.os, "replace", fake_replace)
    config.save_config(config.AppConfig())
    assert replaced
    src, dest = replaced[0]
    assert src.suffix == ".tmp"
    assert dest.name == "config.json"


def test_config_from_mapping_sanitizes_values() -> None:
    raw = {
        "playlists_dir": 123,
        "metadata_probe": "",
        "probe_timeout": -1,
        "ingest_workers": 99,
    }
    cfg = config._config_from_mapping(raw)
    defaults = config.AppConfig()
    assert cfg.playlists_dir == defaults.playlists_dir
    assert cfg.metadata_probe == "yt-dlp"
    assert cfg.probe_timeout == 120.0
    assert cfg.ingest_workers == 8


def test_config_from_mapping_rejects_bool_workers() -> None:
    cfg = config._config_from_mapping({"ingest_workers": True})
    assert cfg.ingest_workers == 2


def test_default_playlists_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_MUSIC_DIR", str(tmp_path / "Music"))
    assert config.default_playlists_dir() == str(tmp_path / "Music" / "tori")
    monkeypatch.delenv("XDG_MUSIC_DIR")
    monkeypatch.setattr(config.Path, "home", lambda: tmp_path)
    assert config.default_playlists_dir() == str(tmp_path / "Music" / "tori")


def test_get_config_dir_os_defaults(monkeypatch, tmp_path: Path) -> None:
    if os.name == "nt":
        monkeypatch.setenv("APPDATA", str(tmp_path))
        path = config.get_config_dir("tori")
        assert path == tmp_path / "tori"
    else:
        monkeypatch.setattr(config, "_is_macos", lambda: False)
        xdg = tmp_path / "xdg"
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        path = config.get_config_dir("tori")
        assert path == xdg / "tori"
        assert path.is_dir()
