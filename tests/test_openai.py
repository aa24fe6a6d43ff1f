import json

import httpx
import pytest

from conftest import FakeVendor, chunked
from tts_sdk.core.cancellation import CancellationToken, OperationCancelled
from tts_sdk.core.execute import stream_synthesize, synthesize
from tts_sdk.errors import APICallError, InvalidArgumentError, LoadApiKeyError, UnsupportedFunctionalityError
from tts_sdk.integrations.tts import CallOptions
from tts_sdk.integrations.tts_openai import OpenAIModel, create_openai, openai_custom_voice


def _provider(vendor: FakeVendor, **kwargs):
    return create_openai(api_key="sk-test", base_url="https://api.test/v1/", client=vendor.client(), **kwargs)


@pytest.mark.asyncio
async def test_synthesize_request_shape() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"mp3", headers={"content-type": "audio/mpeg"}))
    model = _provider(vendor, organization="org-1").speech(OpenAIModel.GPT_4O_MINI_TTS)

    result = await synthesize(
        model=model,
        text="Hello",
        voice="nova",
        speed=1.1,
        instructions="cheerful",
        language="en",
        provider_options={"openai": {"extraBody": {"stream_format": "audio"}}},
    )

    assert result.audio == b"mp3"
    assert result.media_type == "audio/mpeg"
    assert result.response.model_id == "gpt-4o-mini-tts"
    assert [w.setting for w in result.warnings] == ["language"]

    req = vendor.requests[0]
    assert req.method == "POST"
    assert str(req.url) == "https://api.test/v1/audio/speech"
    assert req.headers["authorization"] == "Bearer sk-test"
    assert req.headers["openai-organization"] == "org-1"
    assert "tts-sdk/openai/" in req.headers["user-agent"]
    assert json.loads(req.content) == {
        "model": "gpt-4o-mini-tts",
        "input": "Hello",
        "voice": "nova",
        "response_format": "mp3",
        "speed": 1.1,
        "instructions": "cheerful",
        "stream_format": "audio",
    }


@pytest.mark.asyncio
async def test_custom_voice_and_default_voice() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))
    model = _provider(vendor).speech("tts-1")

    await synthesize(model=model, text="a", voice=openai_custom_voice("my-voice"))
    await synthesize(model=model, text="b")

    assert json.loads(vendor.requests[0].content)["voice"] == "my-voice"
    assert json.loads(vendor.requests[1].content)["voice"] == "alloy"


@pytest.mark.asyncio
async def test_unknown_voice_fails_before_any_request() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))
    with pytest.raises(InvalidArgumentError):
        await synthesize(model=_provider(vendor).speech("tts-1"), text="hi", voice="robot")
    assert vendor.requests == []


def test_unknown_model_id_is_rejected() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200))
    with pytest.raises(InvalidArgumentError):
        _provider(vendor).speech("tts-9")


@pytest.mark.asyncio
async def test_http_error_becomes_api_call_error() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(400, json={"error": {"message": "bad voice"}}))
    with pytest.raises(APICallError) as exc:
        await synthesize(model=_provider(vendor).speech("tts-1"), text="hi")
    assert exc.value.status_code == 400
    assert exc.value.response_body == {"error": {"message": "bad voice"}}
    assert len(vendor.requests) == 1


@pytest.mark.asyncio
async def test_rate_limit_is_retried() -> None:
    responses = [
        httpx.Response(429, headers={"retry-after": "0"}, json={"error": "slow down"}),
        httpx.Response(200, content=b"ok"),
    ]
    vendor = FakeVendor(lambda req: responses.pop(0))
    result = await synthesize(model=_provider(vendor).speech("tts-1"), text="hi", max_retries=1)
    assert result.audio == b"ok"
    assert len(vendor.requests) == 2


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))
    model = create_openai(base_url="https://api.test/v1", client=vendor.client()).speech("tts-1")
    with pytest.raises(LoadApiKeyError):
        await synthesize(model=model, text="hi")
    assert vendor.requests == []


@pytest.mark.asyncio
async def test_ssml_is_unsupported() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))
    model = _provider(vendor).speech("tts-1")
    with pytest.raises(UnsupportedFunctionalityError):
        await model.synthesize_once(CallOptions(text="hi", ssml="<speak>hi</speak>"))


@pytest.mark.asyncio
async def test_stream_relays_body_chunks() -> None:
    vendor = FakeVendor(
        lambda req: httpx.Response(200, content=chunked(b"ab", b"cd"), headers={"content-type": "audio/mpeg"})
    )
    result = await stream_synthesize(model=_provider(vendor).speech("tts-1"), text="hi")
    chunks = [c async for c in result.audio_stream]

    assert b"".join(c.data for c in chunks) == b"abcd"
    assert chunks[-1].is_final and chunks[-1].data == b""
    assert sum(1 for c in chunks if c.is_final) == 1
    assert result.media_type == "audio/mpeg"


@pytest.mark.asyncio
async def test_stream_error_status_surfaces_on_open() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(401, json={"error": "unauthorized"}))
    with pytest.raises(APICallError) as exc:
        await stream_synthesize(model=_provider(vendor).speech("tts-1"), text="hi")
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_stream_cancel_stops_relay() -> None:
    vendor = FakeVendor(
        lambda req: httpx.Response(200, content=chunked(b"ab", b"cd", b"ef"), headers={"content-type": "audio/mpeg"})
    )
    token = CancellationToken()
    result = await stream_synthesize(model=_provider(vendor).speech("tts-1"), text="hi", cancellation_token=token)

    received = []
    with pytest.raises(OperationCancelled):
        async for chunk in result.audio_stream:
            received.append(chunk)
            token.cancel()

    assert [c.data for c in received] == [b"ab"]
    assert not any(c.is_final for c in received)
