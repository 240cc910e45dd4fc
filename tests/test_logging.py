"""
Tests for the structured logging helpers.
"""

import pytest
import structlog

from orgboard import __version__
from orgboard.logging import (
    LogContext,
    _add_orgboard_context,
    bind_context,
    clear_context,
    get_processors,
    log_timing,
)


class TestLogContext:
    """Tests for context binding."""

    def test_context_is_scoped(self):
        """Test LogContext unbinds only its own keys."""
        clear_context()
        bind_context(command="issues")

        with LogContext(org="acme", resource="project_boards"):
            inside = structlog.contextvars.get_contextvars()

        outside = structlog.contextvars.get_contextvars()
        clear_context()

        assert inside == {"command": "issues", "org": "acme", "resource": "project_boards"}
        assert outside == {"command": "issues"}


class TestLogTiming:
    """Tests for the log_timing decorator."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        @log_timing("double")
        async def double(x):
            return x * 2

        assert await double(21) == 42

    @pytest.mark.asyncio
    async def test_reraises(self):
        @log_timing("explode")
        async def explode():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await explode()

    def test_rejects_sync_functions(self):
        with pytest.raises(TypeError):

            @log_timing("sync")
            def sync():
                return 1


class TestProcessors:
    """Tests for the processor chain."""

    def test_json_format(self):
        """Test LOG_FORMAT=json ends the chain with the JSON renderer."""
        processors = get_processors("json")

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_format(self):
        processors = get_processors("console")

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_entries_carry_app_and_version(self):
        """Test every entry is stamped with the tool name and version."""
        event = _add_orgboard_context(None, "info", {"event": "cache_hit"})

        assert event == {"event": "cache_hit", "app": "orgboard", "version": __version__}
