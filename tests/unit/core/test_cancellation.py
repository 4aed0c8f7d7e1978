"""
Unit tests for cancellation tokens and run_cancellable.
"""

import asyncio

import pytest

from mailsub.core.cancellation import CancellationToken, run_cancellable
from mailsub.core.exceptions import OperationCancelledError


class TestCancellationToken:
    def test_starts_not_cancelled(self):
        token = CancellationToken()

        assert token.cancelled is False
        assert token.reason is None
        token.raise_if_cancelled("noop")

    def test_cancel_records_first_reason(self):
        token = CancellationToken()

        token.cancel("client disconnected")
        token.cancel("second reason ignored")

        assert token.cancelled is True
        assert token.reason == "client disconnected"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError, match="save was cancelled"):
            token.raise_if_cancelled("save")

    @pytest.mark.asyncio
    async def test_with_timeout_fires(self):
        token = CancellationToken.with_timeout(0.01)

        await asyncio.wait_for(token.wait(), timeout=1)

        assert token.cancelled is True
        assert "deadline" in token.reason


class TestRunCancellable:
    @pytest.mark.asyncio
    async def test_without_token_just_awaits(self):
        async def work():
            return 42

        assert await run_cancellable(work(), None, "work") == 42

    @pytest.mark.asyncio
    async def test_returns_result_when_token_not_fired(self):
        async def work():
            return "done"

        assert await run_cancellable(work(), CancellationToken(), "work") == "done"

    @pytest.mark.asyncio
    async def test_already_cancelled_token_never_starts_work(self):
        started = False

        async def work():
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await run_cancellable(work(), token, "work")
        assert started is False

    @pytest.mark.asyncio
    async def test_cancels_in_flight_work(self):
        finished = asyncio.Event()
        interrupted = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
                finished.set()
            except asyncio.CancelledError:
                interrupted.set()
                raise

        token = CancellationToken.with_timeout(0.01)

        with pytest.raises(OperationCancelledError, match="slow_call was cancelled"):
            await run_cancellable(slow(), token, "slow_call")

        assert interrupted.is_set()
        assert not finished.is_set()

    @pytest.mark.asyncio
    async def test_work_errors_propagate(self):
        async def failing():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await run_cancellable(failing(), CancellationToken(), "failing")

    @pytest.mark.asyncio
    async def test_native_task_cancellation_propagates(self):
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        outer = asyncio.ensure_future(run_cancellable(slow(), CancellationToken(), "slow"))
        await started.wait()
        outer.cancel()

        with pytest.raises(asyncio.CancelledError):
            await outer
