"""Pytest configuration for tori."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from tori.playlist_store import PlaylistStore
from tori.song import Song


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "posix: needs POSIX filesystem features (symlinks, raw names)"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    del config
    if sys.platform != "win32":
        return
    skip_posix = pytest.mark.skip(reason="Needs POSIX filesystem semantics.")
    for item in items:
        if "posix" in item.keywords:
            item.add_marker(skip_posix)


@pytest.fixture
def store(tmp_path: Path) -> PlaylistStore:
    return PlaylistStore(tmp_path / "playlists")


@pytest.fixture
def songs() -> list[Song]:
    return [
        Song(title="Blue", path="/music/blue.mp3", duration=125),
        Song(title="So What", path="/music/so_what.flac", duration=562),
        Song(title="Naima", path="https://example.com/naima", duration=261),
        Song(title="Café", path="/music/café.ogg", duration=0),
    ]
