"""Tests for environment-driven configuration."""
import importlib
import logging

from rich.logging import RichHandler

import cfe_prep.config as config


def test_env_overrides_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("CFE_PREP_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("CFE_PREP_USER", "alice")
    try:
        reloaded = importlib.reload(config)
        assert reloaded.DEFAULT_DB_PATH == str(tmp_path / "env.db")
        assert reloaded.DEFAULT_USER_ID == "alice"
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_default_user(monkeypatch):
    monkeypatch.delenv("CFE_PREP_USER", raising=False)
    try:
        assert importlib.reload(config).DEFAULT_USER_ID == "demo-user"
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_configure_logging_installs_rich_handler():
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    root.handlers = []
    try:
        config.configure_logging("debug")
        assert root.level == logging.DEBUG
        assert any(isinstance(h, RichHandler) for h in root.handlers)
    finally:
        root.handlers = saved
        root.setLevel(saved_level)
