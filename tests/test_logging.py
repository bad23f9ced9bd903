"""Tests for the package logger setup."""

from __future__ import annotations

import io
import logging
from typing import Iterator

import pytest

from skillsupply.logging import ROOT_LOGGER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_child_messages_reach_stream(self) -> None:
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)

        get_logger("fetch").debug("cloning %s", "acme/skills")

        assert stream.getvalue() == "DEBUG skillsupply.fetch: cloning acme/skills\n"

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        setup_logging("warning", stream=stream)

        get_logger("fetch").info("hidden")
        get_logger("fetch").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_repeat_calls_replace_handler(self) -> None:
        """Configuring twice leaves exactly one handler."""
        first, second = io.StringIO(), io.StringIO()
        setup_logging("INFO", stream=first)
        root = setup_logging("INFO", stream=second)

        get_logger("sync").info("once")

        assert len(root.handlers) == 1
        assert first.getvalue() == ""
        assert second.getvalue().count("once") == 1

    @pytest.mark.parametrize("level", ["verbose", "", "root"])
    def test_unknown_level_is_warning(self, level: str) -> None:
        root = setup_logging(level, stream=io.StringIO())

        assert root.level == logging.WARNING

    def test_numeric_level(self) -> None:
        assert setup_logging(logging.ERROR, stream=io.StringIO()).level == logging.ERROR


class TestGetLogger:
    """Tests for get_logger."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("fetch", "skillsupply.fetch"),
            ("agents.state", "skillsupply.agents.state"),
            ("skillsupply.sync", "skillsupply.sync"),
            ("skillsupply", "skillsupply"),
            ("skillsupplyx", "skillsupply.skillsupplyx"),
        ],
    )
    def test_names(self, name: str, expected: str) -> None:
        assert get_logger(name).name == expected
