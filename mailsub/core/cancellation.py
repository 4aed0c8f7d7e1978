"""
Cancellation Tokens

Explicit cancellation signal threaded through every lifecycle operation.

A token is cancelled either by the caller (``token.cancel()``) or by a
deadline (``CancellationToken.with_timeout(seconds)``). ``run_cancellable``
races an awaitable against the token: when the token fires first, the
in-flight task is cancelled and ``OperationCancelledError`` is raised so the
caller can map it to a timeout-class response.

Native task cancellation (``asyncio.CancelledError`` delivered to the
calling task) is not converted; it propagates as usual.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from mailsub.core.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal.

    Example:
        token = CancellationToken.with_timeout(30)
        subscription = await lifecycle.create("alice@example.com", cancel_token=token)
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._timer: asyncio.TimerHandle | None = None
        self.reason: str | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that cancels itself after ``seconds``. Requires a running loop."""
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token.cancel, f"deadline of {seconds}s exceeded")
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCancelledError(f"{operation} was cancelled: {self.reason}")


async def run_cancellable(
    awaitable: Awaitable[T],
    cancel_token: CancellationToken | None,
    operation: str,
) -> T:
    """
    Await ``awaitable`` unless ``cancel_token`` fires first.

    Args:
        awaitable: Coroutine performing the I/O
        cancel_token: Token to observe (None = not cancellable)
        operation: Operation name used in the error message

    Returns:
        Result of the awaitable

    Raises:
        OperationCancelledError: If the token fired before completion
    """
    if cancel_token is None:
        return await awaitable

    if cancel_token.cancelled:
        # Close the coroutine so it does not warn about never being awaited
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        cancel_token.raise_if_cancelled(operation)

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug(f"{operation} raised while being cancelled: {e}")

    logger.warning(f"⚠️ {operation} cancelled: {cancel_token.reason}")
    raise OperationCancelledError(f"{operation} was cancelled: {cancel_token.reason}")
