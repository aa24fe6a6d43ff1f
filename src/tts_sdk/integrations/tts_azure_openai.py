from __future__ import annotations

import re
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from tts_sdk.config import AzureOpenAISettings, without_trailing_slash
from tts_sdk.core.cancellation import ensure_token
from tts_sdk.errors import InvalidArgumentError, LoadApiKeyError, UnsupportedFunctionalityError
from tts_sdk.integrations.http import (
    HttpSession,
    ModelConfig,
    combine_headers,
    headers_to_dict,
    relay_body,
    with_user_agent_suffix,
)
from tts_sdk.integrations.identifiers import Custom, custom, require_non_empty, resolve_identifier
from tts_sdk.integrations.tts import (
    Capabilities,
    CallOptions,
    ResponseMetadata,
    StreamResult,
    SynthesisResult,
    unsupported_setting_warnings,
)

VERSION = "0.1.0"

_VOICE_NS = "azure-openai.voice"
_OPENAI_SEGMENT = re.compile(r"(^|/)openai(/|$)")

TokenProvider = Callable[[], Awaitable[str]]


class AzureOpenAIVoice(str, Enum):
    ALLOY = "alloy"
    ECHO = "echo"
    FABLE = "fable"
    ONYX = "onyx"
    NOVA = "nova"
    SHIMMER = "shimmer"


def azure_openai_custom_voice(voice: str) -> Custom:
    return custom(_VOICE_NS, voice, label="Azure OpenAI custom voice")


def resolve_azure_openai_voice(voice: object) -> str:
    if voice is None:
        return AzureOpenAIVoice.ALLOY.value
    return resolve_identifier(
        voice,
        known=AzureOpenAIVoice,
        namespace=_VOICE_NS,
        label="Azure OpenAI voice",
        helper="azure_openai_custom_voice",
    )


def ensure_openai_path(value: str) -> str:
    normalized = without_trailing_slash(value)
    if _OPENAI_SEGMENT.search(normalized):
        return normalized
    return "%s/openai" % normalized


class AzureOpenAITTSModel:
    """
    Azure OpenAI deployments: the deployment id is the model id.
    """

    capabilities = Capabilities(
        supports_streaming=True,
        supports_timestamps=False,
        supports_ssml=False,
        supports_voice_cloning=False,
    )

    def __init__(self, *, deployment_id: str, api_version: str, config: ModelConfig) -> None:
        self.provider = config.provider
        self.model_id = deployment_id
        self._api_version = api_version
        self._config = config

    def _url(self) -> str:
        return "%s/deployments/%s/audio/speech" % (self._config.base_url, self.model_id)

    def _body(self, options: CallOptions) -> Dict[str, Any]:
        if options.ssml:
            raise UnsupportedFunctionalityError("ssml")
        payload: Dict[str, Any] = {
            "input": options.text,
            "voice": resolve_azure_openai_voice(options.voice),
            "response_format": options.output_format or "mp3",
        }
        if options.speed is not None:
            payload["speed"] = options.speed
        if options.instructions is not None:
            payload["instructions"] = options.instructions
        return payload

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:
        payload = self._body(options)
        resp = await self._config.session.request(
            "POST",
            self._url(),
            token=ensure_token(options.cancellation_token),
            context="Azure OpenAI TTS request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
            params={"api-version": self._api_version},
        )
        return SynthesisResult(
            audio=resp.content,
            media_type=resp.headers.get("content-type", "audio/mpeg"),
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(resp.headers)),
            warnings=unsupported_setting_warnings(options, "language", "sample_rate"),
        )

    async def synthesize_stream(self, options: CallOptions) -> StreamResult:
        payload = self._body(options)
        token = ensure_token(options.cancellation_token)
        stream = await self._config.session.open_stream(
            "POST",
            self._url(),
            token=token,
            context="Azure OpenAI TTS stream request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
            params={"api-version": self._api_version},
        )
        return StreamResult(
            audio_stream=relay_body(stream, token),
            media_type=stream.content_type or "audio/mpeg",
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(stream.response.headers)),
            warnings=unsupported_setting_warnings(options, "language", "sample_rate"),
        )


class AzureOpenAIProvider:
    """
    Auth is either a static `api-key` or an async `get_token` callback (Entra ID bearer token).
    """

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        base_url: Optional[str] = None,
        resource_name: Optional[str] = None,
        deployment_id: Optional[str] = None,
        api_version: Optional[str] = None,
        api_key: Optional[str] = None,
        get_token: Optional[TokenProvider] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
        name: str = "azure-openai",
        settings: Optional[AzureOpenAISettings] = None,
    ) -> None:
        s = settings or AzureOpenAISettings()
        self._api_key = api_key or s.api_key
        self._get_token = get_token
        self._extra_headers = dict(headers or {})

        explicit = endpoint or base_url or s.endpoint
        resource = resource_name or s.resource_name
        if explicit:
            url = ensure_openai_path(explicit)
        elif resource:
            url = "https://%s.openai.azure.com/openai" % resource
        else:
            raise InvalidArgumentError(
                "Azure OpenAI requires endpoint/base_url or resource_name (or AZURE_ENDPOINT)."
            )

        deployment = deployment_id or s.deployment_id or s.legacy_deployment_id
        if deployment is None:
            raise InvalidArgumentError(
                "Azure OpenAI deployment id is required. Pass deployment_id, or set "
                "AZURE_OPENAI_DEPLOYMENT_ID or AZURE_DEPLOYMENT_ID."
            )
        self._deployment_id = require_non_empty(deployment, "Azure OpenAI deployment id")
        self._api_version = api_version or s.api_version

        self._config = ModelConfig(
            provider="%s.speech" % name,
            base_url=url,
            headers=self._auth_headers,
            session=HttpSession(client=client, timeout_seconds=timeout_seconds),
        )

    async def _auth_headers(self) -> Dict[str, str]:
        if self._get_token is not None:
            token = await self._get_token()
            auth = {"Authorization": "Bearer %s" % token}
        elif self._api_key:
            auth = {"api-key": self._api_key}
        else:
            raise LoadApiKeyError(
                "Azure OpenAI authentication missing. Provide api_key/get_token or set AZURE_API_KEY."
            )
        return with_user_agent_suffix(
            combine_headers(auth, self._extra_headers),
            "tts-sdk/azure-openai/%s" % VERSION,
        )

    def speech(self, deployment_id: Optional[str] = None) -> AzureOpenAITTSModel:
        """
        The configured deployment, or an explicit one (the registry passes its model id here).
        """
        deployment = (
            require_non_empty(deployment_id, "Azure OpenAI deployment id")
            if deployment_id is not None
            else self._deployment_id
        )
        return AzureOpenAITTSModel(deployment_id=deployment, api_version=self._api_version, config=self._config)

    speech_model = speech


def create_azure_openai(**kwargs: Any) -> AzureOpenAIProvider:
    return AzureOpenAIProvider(**kwargs)
