import logging

import pytest

from core import logger as log_setup


@pytest.fixture
def fresh_root(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(log_setup, "_configured", False)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setenv("LOG_TO_FILE", "false")
    monkeypatch.setenv("LOG_TO_STDOUT", "true")
    return root


def test_setup_adds_stdout_handler(fresh_root):
    log_setup.setup_logging()

    assert len(fresh_root.handlers) == 1
    assert isinstance(fresh_root.handlers[0], logging.StreamHandler)
    assert fresh_root.handlers[0].formatter._fmt == log_setup.LOG_FORMAT


def test_setup_keeps_existing_root_handlers(fresh_root):
    existing = logging.NullHandler()
    fresh_root.handlers.append(existing)

    log_setup.setup_logging()
    log_setup._configured = False
    log_setup.setup_logging()

    assert fresh_root.handlers == [existing]


def test_file_handler_rotates_under_log_dir(fresh_root, tmp_path, monkeypatch):
    log_file = tmp_path / "logs" / "stock_monitor.log"
    monkeypatch.setenv("LOG_TO_STDOUT", "false")
    monkeypatch.setenv("LOG_TO_FILE", "true")
    monkeypatch.setenv("LOG_FILE", str(log_file))

    log_setup.setup_logging()

    try:
        assert len(fresh_root.handlers) == 1
        handler = fresh_root.handlers[0]
        assert handler.baseFilename == str(log_file)
        assert log_file.parent.is_dir()
    finally:
        for h in fresh_root.handlers:
            h.close()
