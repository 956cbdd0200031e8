"""
Unit Tests for Readiness Polling
================================
"""

import asyncio
import time

import pytest

from render_service.core.rendering.readiness import ReadinessTimeout, poll_until


class TestPollUntil:
    async def test_returns_once_predicate_is_true(self):
        answers = iter([False, False, True])
        calls = []

        async def predicate():
            calls.append(1)
            return next(answers)

        await poll_until(predicate, timeout=1.0, interval=0.001)
        assert len(calls) == 3

    async def test_immediately_true_predicate_does_not_sleep(self):
        async def predicate():
            return True

        started = time.monotonic()
        await poll_until(predicate, timeout=5.0, interval=1.0)
        assert time.monotonic() - started < 0.5

    async def test_times_out(self):
        async def predicate():
            return False

        with pytest.raises(ReadinessTimeout) as exc_info:
            await poll_until(predicate, timeout=0.05, interval=0.01)
        assert exc_info.value.timeout == 0.05

    async def test_hung_predicate_is_cut_off_at_the_deadline(self):
        async def predicate():
            await asyncio.sleep(2.0)
            return True

        started = time.monotonic()
        with pytest.raises(ReadinessTimeout):
            await poll_until(predicate, timeout=0.1, interval=0.01)
        assert time.monotonic() - started < 0.5

    async def test_truthy_non_boolean_is_not_ready(self):
        async def predicate():
            return 1

        with pytest.raises(ReadinessTimeout):
            await poll_until(predicate, timeout=0.03, interval=0.01)

    async def test_predicate_errors_propagate(self):
        async def predicate():
            raise RuntimeError("page crashed")

        with pytest.raises(RuntimeError, match="page crashed"):
            await poll_until(predicate, timeout=1.0)
