import json

import httpx
import pytest

from conftest import FakeVendor, chunked
from tts_sdk.config import AzureOpenAISettings
from tts_sdk.core.execute import stream_synthesize, synthesize, synthesize_with_timestamps
from tts_sdk.errors import InvalidArgumentError, LoadApiKeyError, UnsupportedFunctionalityError
from tts_sdk.integrations.tts_azure_openai import create_azure_openai, ensure_openai_path


def _settings(**kwargs) -> AzureOpenAISettings:
    values = {
        "AZURE_API_KEY": None,
        "AZURE_ENDPOINT": None,
        "AZURE_RESOURCE_NAME": None,
        "AZURE_OPENAI_DEPLOYMENT_ID": None,
        "AZURE_DEPLOYMENT_ID": None,
    }
    values.update(kwargs)
    return AzureOpenAISettings(**values)


def test_ensure_openai_path() -> None:
    assert ensure_openai_path("https://res.openai.azure.com/") == "https://res.openai.azure.com/openai"
    assert ensure_openai_path("https://res.openai.azure.com/openai/") == "https://res.openai.azure.com/openai"


@pytest.mark.asyncio
async def test_request_uses_deployment_and_api_key() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"wav", headers={"content-type": "audio/wav"}))
    provider = create_azure_openai(
        resource_name="myres",
        deployment_id="tts-prod",
        api_key="azure-key",
        client=vendor.client(),
        settings=_settings(),
    )

    result = await synthesize(model=provider.speech(), text="Hello", voice="echo", output_format="wav")

    assert result.audio == b"wav"
    assert result.response.model_id == "tts-prod"
    req = vendor.requests[0]
    assert req.url.path == "/openai/deployments/tts-prod/audio/speech"
    assert req.url.host == "myres.openai.azure.com"
    assert req.url.params["api-version"] == "2024-02-15-preview"
    assert req.headers["api-key"] == "azure-key"
    assert "authorization" not in req.headers
    assert json.loads(req.content) == {"input": "Hello", "voice": "echo", "response_format": "wav"}


@pytest.mark.asyncio
async def test_token_callback_wins_over_api_key() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))

    async def get_token() -> str:
        return "entra-token"

    provider = create_azure_openai(
        endpoint="https://custom.example.com",
        deployment_id="d1",
        api_key="unused",
        get_token=get_token,
        api_version="2025-01-01",
        client=vendor.client(),
        settings=_settings(),
    )
    await synthesize(model=provider.speech(), text="hi")

    req = vendor.requests[0]
    assert str(req.url).startswith("https://custom.example.com/openai/deployments/d1/audio/speech")
    assert req.headers["authorization"] == "Bearer entra-token"
    assert "api-key" not in req.headers
    assert req.url.params["api-version"] == "2025-01-01"


def test_deployment_from_legacy_env_name() -> None:
    provider = create_azure_openai(
        resource_name="r",
        settings=_settings(AZURE_DEPLOYMENT_ID="legacy"),
    )
    assert provider.speech().model_id == "legacy"
    assert provider.speech("explicit").model_id == "explicit"


def test_missing_deployment_or_endpoint() -> None:
    with pytest.raises(InvalidArgumentError):
        create_azure_openai(resource_name="r", settings=_settings())
    with pytest.raises(InvalidArgumentError):
        create_azure_openai(deployment_id="d", settings=_settings())


@pytest.mark.asyncio
async def test_missing_auth() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=b"x"))
    provider = create_azure_openai(resource_name="r", deployment_id="d", client=vendor.client(), settings=_settings())
    with pytest.raises(LoadApiKeyError):
        await synthesize(model=provider.speech(), text="hi")
    assert vendor.requests == []


@pytest.mark.asyncio
async def test_stream_and_no_timestamps() -> None:
    vendor = FakeVendor(lambda req: httpx.Response(200, content=chunked(b"1", b"2")))
    provider = create_azure_openai(
        resource_name="r", deployment_id="d", api_key="k", client=vendor.client(), settings=_settings()
    )
    result = await stream_synthesize(model=provider.speech(), text="hi")
    chunks = [c async for c in result.audio_stream]
    assert [c.data for c in chunks] == [b"1", b"2", b""]

    with pytest.raises(UnsupportedFunctionalityError):
        await synthesize_with_timestamps(model=provider.speech(), text="hi")
