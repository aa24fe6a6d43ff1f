from typing import AsyncIterator, Callable, List

import httpx
import pytest

Handler = Callable[[httpx.Request], httpx.Response]


class FakeVendor:
    """
    Records requests and answers them with a handler, through httpx.MockTransport.
    """

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))


async def chunked(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("tts_sdk.core.retry.random.random", lambda: 0.0)
