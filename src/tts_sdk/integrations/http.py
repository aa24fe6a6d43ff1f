from __future__ import annotations

import base64
import binascii
import codecs
import json
import re
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from tts_sdk.core.cancellation import CancellationToken
from tts_sdk.errors import APICallError
from tts_sdk.integrations.tts import AudioChunk

_EVENT_SPLIT = re.compile(r"\r?\n\r?\n")
_LINE_SPLIT = re.compile(r"\r?\n")


class HttpSession:
    """
    Wraps an optional shared httpx.AsyncClient.

    Without one, every call opens a short-lived client; passing a client (e.g. one
    built on httpx.MockTransport) lets tests and long-running apps control transport.
    """

    def __init__(self, *, client: Optional[httpx.AsyncClient] = None, timeout_seconds: float = 60.0) -> None:
        self._client = client
        self._timeout = float(timeout_seconds)

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def request(
        self,
        method: str,
        url: str,
        *,
        token: CancellationToken,
        context: str,
        json_body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, str]] = None,
        check: bool = True,
    ) -> httpx.Response:
        async with self.connect() as client:
            kwargs: Dict[str, Any] = {"headers": dict(headers or {}), "params": params}
            if json_body is not None:
                kwargs["json"] = json_body
            resp = await token.run(client.request(method, url, **kwargs))
        if check:
            await assert_ok(resp, context)
        return resp

    async def open_stream(
        self,
        method: str,
        url: str,
        *,
        token: CancellationToken,
        context: str,
        json_body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> "OpenStream":
        """
        Send a request and keep the body unread. The caller owns the returned
        stream and must `aclose()` it (the relay helpers below do).
        """
        stack = AsyncExitStack()
        try:
            client = await stack.enter_async_context(self.connect())
            kwargs: Dict[str, Any] = {"headers": dict(headers or {}), "params": params}
            if json_body is not None:
                kwargs["json"] = json_body
            request = client.build_request(method, url, **kwargs)
            resp = await token.run(client.send(request, stream=True))
            stack.push_async_callback(resp.aclose)
            await assert_ok(resp, context)
        except BaseException:
            await stack.aclose()
            raise
        return OpenStream(response=resp, stack=stack)


@dataclass
class OpenStream:
    response: httpx.Response
    stack: AsyncExitStack

    @property
    def content_type(self) -> Optional[str]:
        return self.response.headers.get("content-type")

    async def aclose(self) -> None:
        await self.stack.aclose()


async def read_json_safe(response: httpx.Response) -> Any:
    await response.aread()
    try:
        return response.json()
    except ValueError:
        return response.text


async def assert_ok(response: httpx.Response, context: str) -> None:
    if response.is_success:
        return
    body = await read_json_safe(response)
    raise APICallError(
        "%s failed with status %d." % (context, response.status_code),
        status_code=response.status_code,
        response_headers=headers_to_dict(response.headers),
        response_body=body,
    )


def headers_to_dict(headers: httpx.Headers) -> Dict[str, str]:
    return {k: v for k, v in headers.items()}


def combine_headers(*header_sets: Optional[Mapping[str, Optional[str]]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for headers in header_sets:
        if not headers:
            continue
        for k, v in headers.items():
            if v is not None:
                out[k] = v
    return out


def with_user_agent_suffix(headers: Mapping[str, Optional[str]], suffix: str) -> Dict[str, str]:
    ua = headers.get("User-Agent")
    return combine_headers(headers, {"User-Agent": "%s %s" % (ua, suffix) if ua else suffix})


def decode_base64(value: str) -> bytes:
    try:
        return base64.b64decode(value)
    except (binascii.Error, ValueError) as e:
        raise APICallError("Provider returned malformed base64 audio.", cause=e)


async def relay_body(stream: OpenStream, token: CancellationToken) -> AsyncIterator[AudioChunk]:
    """
    Relay a chunked audio body, ending with one empty final chunk.
    """
    try:
        async for data in token.iterate(stream.response.aiter_bytes()):
            if data:
                yield AudioChunk(data=data)
        yield AudioChunk(data=b"", is_final=True)
    finally:
        await stream.aclose()


async def relay_sse(stream: OpenStream, token: CancellationToken) -> AsyncIterator[AudioChunk]:
    try:
        async for data in token.iterate(iter_sse_audio_chunks(stream.response.aiter_bytes())):
            yield AudioChunk(data=data)
        yield AudioChunk(data=b"", is_final=True)
    finally:
        await stream.aclose()


async def iter_sse_audio_chunks(source: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """
    Decode `text/event-stream` audio frames.

    Events are blank-line delimited; `data:` lines are joined, `[DONE]` ends the
    stream, and JSON payloads carry base64 audio in `audio`, `output_audio` or
    `data.audio_base64`. Non-JSON events are skipped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    async for raw in source:
        buffer += decoder.decode(raw)
        parts = _EVENT_SPLIT.split(buffer)
        buffer = parts.pop()
        for block in parts:
            payload = _event_data(block)
            if payload is None:
                continue
            if payload == "[DONE]":
                return
            audio = _audio_from_event(payload)
            if audio:
                yield decode_base64(audio)

    # Trailing event without a terminating blank line.
    payload = _event_data(buffer + decoder.decode(b"", final=True))
    if payload and payload != "[DONE]":
        audio = _audio_from_event(payload)
        if audio:
            yield decode_base64(audio)


def _event_data(block: str) -> Optional[str]:
    lines = [
        re.sub(r"^data:\s?", "", line).strip()
        for line in _LINE_SPLIT.split(block)
        if line.startswith("data:")
    ]
    if not lines:
        return None
    return "".join(lines)


def _audio_from_event(payload: str) -> Optional[str]:
    try:
        parsed = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None
    for key in ("audio", "output_audio"):
        v = parsed.get(key)
        if isinstance(v, str) and v:
            return v
    data = parsed.get("data")
    if isinstance(data, dict):
        v = data.get("audio_base64")
        if isinstance(v, str) and v:
            return v
    return None


HeadersFactory = Callable[[], Awaitable[Dict[str, str]]]


@dataclass(frozen=True)
class ModelConfig:
    """
    Construction inputs shared by every adapter, resolved once by the provider factory.
    """

    provider: str
    base_url: str
    headers: HeadersFactory
    session: HttpSession


def parse_json(response: httpx.Response, context: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise APICallError(
            "%s returned a malformed JSON body." % context,
            status_code=response.status_code,
            response_headers=headers_to_dict(response.headers),
            response_body=response.text,
            cause=e,
        )
