"""Tests for fleet.core.logging."""

import asyncio

import structlog

from fleet.core.logging import LogContext


class TestLogContext:
    def test_binds_and_unbinds(self):
        with LogContext(request_id="r-1", network_id="10.0.0.1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["request_id"] == "r-1"
            assert bound["network_id"] == "10.0.0.1"
        assert "request_id" not in structlog.contextvars.get_contextvars()

    def test_async_block(self):
        async def run():
            async with LogContext(request_id="r-2"):
                return structlog.contextvars.get_contextvars()["request_id"]

        assert asyncio.run(run()) == "r-2"
        assert "request_id" not in structlog.contextvars.get_contextvars()
