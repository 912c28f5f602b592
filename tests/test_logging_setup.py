"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tori import logging_setup


def _tori_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if (h.get_name() or "").startswith("tori-")]


@pytest.fixture
def root(monkeypatch) -> Iterator[logging.Logger]:
    monkeypatch.delenv("TORI_LOG_LEVEL", raising=False)
    logger = logging.getLogger()
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    logger.handlers.clear()
    try:
        yield logger
    finally:
        for handler in _tori_handlers(logger):
            handler.close()
        logger.handlers = saved_handlers
        logger.setLevel(saved_level)


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ({"TORI_LOG_DIR": "{tmp}/custom"}, "custom"),
        ({"LOCALAPPDATA": "{tmp}"}, "tori/logs"),
        ({"XDG_STATE_HOME": "{tmp}"}, "tori/logs"),
    ],
)
def test_log_dir_sources(monkeypatch, tmp_path: Path, env, expected: str) -> None:
    for name in ("TORI_LOG_DIR", "LOCALAPPDATA", "XDG_STATE_HOME"):
        monkeypatch.delenv(name, raising=False)
    for name, value in env.items():
        monkeypatch.setenv(name, value.format(tmp=tmp_path))
    assert logging_setup.log_dir() == tmp_path / expected


def test_log_dir_falls_back_to_home(monkeypatch, tmp_path: Path) -> None:
    for name in ("TORI_LOG_DIR", "LOCALAPPDATA", "XDG_STATE_HOME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(logging_setup.Path, "home", lambda: tmp_path)
    assert logging_setup.log_dir() == tmp_path / ".tori" / "logs"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("", logging.INFO), ("debug", logging.DEBUG), ("30", 30), ("loud", logging.INFO)],
)
def test_level_from_env(monkeypatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("TORI_LOG_LEVEL", raw)
    assert logging_setup.level_from_env() == expected


def test_init_logging_is_idempotent(root: logging.Logger, tmp_path: Path) -> None:
    path = logging_setup.init_logging(tmp_path / "logs")
    assert path == tmp_path / "logs" / "tori.log"
    assert logging_setup.init_logging(tmp_path / "logs") == path
    names = sorted(handler.get_name() for handler in _tori_handlers(root))
    assert names == ["tori-console", "tori-file"]
    logging.getLogger("tori.test").info("hello")
    for handler in _tori_handlers(root):
        handler.flush()
    assert "[MainThread] tori.test: hello" in path.read_text(encoding="utf-8")


def test_init_logging_without_writable_dir(
    root: logging.Logger, tmp_path: Path
) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    assert logging_setup.init_logging(blocker / "logs") is None
    names = [handler.get_name() for handler in _tori_handlers(root)]
    assert names == ["tori-console"]


def test_set_console_level_leaves_file_handler(
    root: logging.Logger, tmp_path: Path
) -> None:
    logging_setup.init_logging(tmp_path)
    logging_setup.set_console_level(logging.ERROR)
    levels = {h.get_name(): h.level for h in _tori_handlers(root)}
    assert levels == {"tori-console": logging.ERROR, "tori-file": logging.INFO}
