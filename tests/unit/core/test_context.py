"""Unit tests for ReconcilerContext and dry-run resolution."""

import logging
from unittest.mock import MagicMock

import pytest
from pathstate.core.context import ReconcilerContext


class TestResolveDryRun:
    """Tests for ReconcilerContext.resolve_dry_run."""

    def test_not_simulating(self) -> None:
        """Without simulate mode mutations proceed."""
        ctx = ReconcilerContext()

        assert ctx.resolve_dry_run(False, "op") is False
        assert ctx.resolve_dry_run(None, "op") is False

    def test_simulating(self) -> None:
        """Simulate mode enables dry-run."""
        ctx = ReconcilerContext(simulate_only=True)

        assert ctx.resolve_dry_run(False, "op") is True
        assert ctx.resolve_dry_run(None, "op") is True

    def test_keeps_state_overrides_simulate(self) -> None:
        """keeps_state=True disables dry-run even in simulate mode."""
        ctx = ReconcilerContext(simulate_only=True)

        assert ctx.resolve_dry_run(True, "op") is False


class TestFailure:
    """Tests for failure bookkeeping."""

    def test_fail_and_reset(self) -> None:
        """fail records the message, reset_failure clears it."""
        ctx = ReconcilerContext()

        ctx.fail("something broke")
        assert ctx.last_failure == "something broke"

        ctx.reset_failure()
        assert ctx.last_failure is None


class TestLogSink:
    """Tests for log level mapping."""

    def test_no_sink_is_silent(self) -> None:
        """Logging without sink is a no-op."""
        ctx = ReconcilerContext(log=None)

        ctx.trace("a")
        ctx.debug("b")
        ctx.verbose("c")
        ctx.warn("d")
        ctx.error("e")

    def test_level_mapping(self) -> None:
        """trace/debug map to debug, verbose to info."""
        sink = MagicMock()
        ctx = ReconcilerContext(log=sink)

        ctx.trace("t %s", 1)
        ctx.debug("d")
        ctx.verbose("v")
        ctx.warn("w")
        ctx.error("e")

        assert sink.debug.call_count == 2
        sink.debug.assert_any_call("t %s", 1)
        sink.info.assert_called_once_with("v")
        sink.warning.assert_called_once_with("w")
        sink.error.assert_called_once_with("e")

    def test_logger_as_sink(self, caplog: pytest.LogCaptureFixture) -> None:
        """A stdlib logger satisfies the sink protocol."""
        log = logging.getLogger("pathstate.tests.context")
        ctx = ReconcilerContext(log=log)

        with caplog.at_level(logging.INFO, logger="pathstate.tests.context"):
            ctx.verbose("hello %s", "world")

        assert "hello world" in caplog.text
