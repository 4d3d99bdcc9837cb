#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that the centralized logging helpers behave correctly.
"""

import logging

import pytest

from chatstream.logging_utils import (
    ContextualLogger,
    configure_logging,
    log_operation,
)


class TestDecorators:
    """Test logging decorators."""

    @pytest.mark.asyncio
    async def test_log_operation_success(self):
        """Test log_operation decorator with successful function."""

        @log_operation("test_operation", log_timing=True, log_result=True)
        async def successful_function():
            return "success"

        result = await successful_function()
        assert result == "success"

    @pytest.mark.asyncio
    async def test_log_operation_with_error(self):
        """Test log_operation decorator with function that raises error."""

        @log_operation("test_operation", log_timing=True)
        async def failing_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError, match="Test error"):
            await failing_function()

    @pytest.mark.asyncio
    async def test_log_operation_preserves_metadata(self):
        @log_operation("test_operation", log_args=True)
        async def documented(a, b=2):
            """Adds things."""
            return a + b

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Adds things."
        assert await documented(1, b=3) == 4


class TestContextualLogger:
    """Test ContextualLogger binding."""

    def test_bind_merges_context(self):
        base = ContextualLogger({"turn_id": "t-1"})
        child = base.bind(phase="stream")

        assert child.base_context == {"turn_id": "t-1", "phase": "stream"}
        assert base.base_context == {"turn_id": "t-1"}

    def test_log_methods(self):
        logger = ContextualLogger({"turn_id": "t-1"})
        logger.debug("debug message", extra_field="value")
        logger.info("info message", extra_field="value")
        logger.warning("warning message", extra_field="value")
        logger.error("error message", extra_field="value")


class TestConfigureLogging:
    """Test configure_logging level handling."""

    def test_sets_root_level(self):
        root = logging.getLogger()
        original = root.level
        try:
            configure_logging({"level": "debug"})
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(original)

    def test_rejects_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown logging level"):
            configure_logging({"level": "chatty"})
