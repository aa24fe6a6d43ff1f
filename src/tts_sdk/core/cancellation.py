from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Awaitable, Optional, TypeVar

T = TypeVar("T")

_DONE = object()


class OperationCancelled(Exception):
    """
    Raised when a CancellationToken fires. Not part of the TTSError taxonomy.
    """

    def __init__(self, message: str = "The operation was aborted.") -> None:
        super().__init__(message)


class CancellationToken:
    """
    Cooperative cancellation shared by one call: retries, sleeps, HTTP requests and chunk reads.
    """

    def __init__(self) -> None:
        self._cancelled = False
        # Created inside the running loop (Python 3.8 primitives are loop-bound).
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled()

    def _get_event(self) -> asyncio.Event:
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    async def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._get_event().wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelled()

    async def run(self, aw: Awaitable[T]) -> T:
        """
        Await `aw` unless the token fires first; the losing task is cancelled,
        which aborts an in-flight httpx request at the transport.
        """
        if self._cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise OperationCancelled()
        task: "asyncio.Future[T]" = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._get_event().wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelled()

    async def iterate(self, source: AsyncIterator[T]) -> AsyncIterator[T]:
        iterator = source.__aiter__()
        while True:
            item = await self.run(_next(iterator))
            if item is _DONE:
                return
            yield item


async def _next(iterator: AsyncIterator[Any]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _DONE


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    return token if token is not None else CancellationToken()
