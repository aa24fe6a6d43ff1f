import asyncio
from typing import AsyncIterator

import pytest

from tts_sdk.core.cancellation import CancellationToken, OperationCancelled, ensure_token


@pytest.mark.asyncio
async def test_sleep_wakes_on_cancel() -> None:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.01, token.cancel)
    started = loop.time()
    with pytest.raises(OperationCancelled):
        await token.sleep(5)
    assert loop.time() - started < 1


@pytest.mark.asyncio
async def test_sleep_completes_without_cancel() -> None:
    token = CancellationToken()
    await token.sleep(0.01)
    assert not token.cancelled


@pytest.mark.asyncio
async def test_run_aborts_pending_work() -> None:
    token = CancellationToken()
    started = asyncio.Event()
    finished = []

    async def slow() -> str:
        started.set()
        await asyncio.sleep(5)
        finished.append(True)
        return "late"

    async def cancel_soon() -> None:
        await started.wait()
        token.cancel()

    with pytest.raises(OperationCancelled):
        await asyncio.gather(token.run(slow()), cancel_soon())
    assert finished == []


@pytest.mark.asyncio
async def test_iterate_stops_when_cancelled() -> None:
    token = CancellationToken()

    async def source() -> AsyncIterator[int]:
        for i in range(10):
            yield i

    seen = []
    with pytest.raises(OperationCancelled):
        async for item in token.iterate(source()):
            seen.append(item)
            if item == 2:
                token.cancel()
    assert seen == [0, 1, 2]


def test_ensure_token() -> None:
    token = CancellationToken()
    assert ensure_token(token) is token
    assert isinstance(ensure_token(None), CancellationToken)
