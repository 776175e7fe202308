"""Tests for structured file logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from smartmon.config import Config
from smartmon.logging import configure
from smartmon.session import Session


@pytest.fixture
def configured(tmp_path: Path):
    config = Config(state_dir=tmp_path / "state", log_level="DEBUG")
    configure(config)
    yield config
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


def read_events(path: Path) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    return [json.loads(line) for line in path.read_text().splitlines() if line]


def test_configure_creates_log_file(configured):
    structlog.get_logger().info("hello", answer=42)

    events = read_events(configured.log_path)

    assert events[-1]["event"] == "hello"
    assert events[-1]["answer"] == 42
    assert events[-1]["level"] == "info"
    assert "ts" in events[-1]


def test_session_events_are_logged(configured, source, display):
    session = Session(source, display)
    session.handle_key("k")
    session.submit_kill_input("4321")

    events = read_events(configured.log_path)

    assert {"event": "sent termination signal", "pid": 4321}.items() <= events[-1].items()


def test_level_filtering(tmp_path: Path):
    config = Config(state_dir=tmp_path / "state", log_level="WARNING")
    configure(config)
    try:
        log = structlog.get_logger()
        log.info("quiet")
        log.warning("loud")
        events = read_events(config.log_path)
    finally:
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()

    assert [e["event"] for e in events] == ["loud"]
