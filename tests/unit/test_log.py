"""
Unit tests for verbosity handling and log formatting.
"""

import io
import logging
import re

import pytest

from socktool.log import (
    NOTICE,
    TimestampFormatter,
    Verbosity,
    apply_verbosity,
    configure_logging,
    notice,
)


class TestVerbosity:
    """Tests for the Verbosity threshold owner."""

    @pytest.mark.parametrize("level,threshold", [
        (0, logging.CRITICAL),
        (1, logging.WARNING),
        (2, NOTICE),
        (3, logging.INFO),
        (4, logging.DEBUG),
        (9, logging.DEBUG),
    ])
    def test_threshold(self, level, threshold):
        assert Verbosity(level).threshold == threshold

    def test_default_is_notice(self):
        assert Verbosity().threshold == NOTICE

    def test_bump(self):
        verbosity = Verbosity()
        verbosity.bump()
        verbosity.bump(2)
        assert verbosity.level == 5

    def test_bump_does_not_unsilence(self):
        verbosity = Verbosity(None)
        verbosity.bump()
        assert verbosity.level is None
        assert verbosity.enabled is False

    def test_set(self):
        verbosity = Verbosity()
        verbosity.set(None)
        assert verbosity.threshold > logging.CRITICAL


class TestFormatter:
    """Tests for the HH:MM:SS prefix and level tags."""

    def _format(self, level: int, msg: str) -> str:
        record = logging.LogRecord("socktool.test", level, __file__, 1, msg, None, None)
        return TimestampFormatter().format(record)

    def test_plain_info(self):
        line = self._format(logging.INFO, "read 6 bytes from [127.0.0.1:7000]")
        assert re.fullmatch(r"\d\d:\d\d:\d\d read 6 bytes from \[127\.0\.0\.1:7000\]", line)

    def test_warning_tag(self):
        assert self._format(logging.WARNING, "socket not connected").endswith(
            " [warning] socket not connected"
        )

    def test_fatal_tag(self):
        assert self._format(logging.CRITICAL, "cannot bind").endswith(" [fatal error] cannot bind")

    @pytest.mark.parametrize("level", [logging.DEBUG, logging.INFO, NOTICE])
    def test_levels_below_warning_are_untagged(self, level):
        assert "[" not in self._format(level, "connected sock")


class TestConfigureLogging:
    """Tests for the package logger setup."""

    def test_threshold_gates_output(self):
        stream = io.StringIO()
        configure_logging(Verbosity(2), stream)
        logger = logging.getLogger("socktool.core.reader")

        logger.info("hidden")
        notice(logger, "shown notice")
        logger.warning("shown warning")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown notice" in output
        assert "[warning] shown warning" in output

    def test_verbose_shows_debug(self):
        stream = io.StringIO()
        configure_logging(Verbosity(4), stream)
        logging.getLogger("socktool.core.writer").debug("calling select")
        assert "calling select" in stream.getvalue()

    def test_silenced_suppresses_fatal(self):
        stream = io.StringIO()
        configure_logging(Verbosity(None), stream)
        logging.getLogger("socktool.cli").critical("cannot open input stream")
        assert stream.getvalue() == ""

    def test_reconfigure_does_not_duplicate(self):
        stream = io.StringIO()
        configure_logging(Verbosity(1), stream)
        configure_logging(Verbosity(1), stream)
        logging.getLogger("socktool").warning("once")
        assert stream.getvalue().count("once") == 1

    def test_apply_verbosity_changes_threshold(self):
        stream = io.StringIO()
        verbosity = Verbosity(1)
        configure_logging(verbosity, stream)

        logging.getLogger("socktool.session").info("before")
        verbosity.bump(2)
        apply_verbosity(verbosity)
        logging.getLogger("socktool.session").info("after")

        output = stream.getvalue()
        assert "before" not in output
        assert "after" in output
