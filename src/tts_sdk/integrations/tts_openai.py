from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tts_sdk.config import OpenAISettings, load_api_key, without_trailing_slash
from tts_sdk.core.cancellation import ensure_token
from tts_sdk.errors import UnsupportedFunctionalityError
from tts_sdk.integrations.http import (
    HttpSession,
    ModelConfig,
    combine_headers,
    headers_to_dict,
    relay_body,
    with_user_agent_suffix,
)
from tts_sdk.integrations.identifiers import Custom, custom, parse_provider_options, resolve_identifier
from tts_sdk.integrations.tts import (
    Capabilities,
    CallOptions,
    ResponseMetadata,
    StreamResult,
    SynthesisResult,
    unsupported_setting_warnings,
)

VERSION = "0.1.0"

_MODEL_NS = "openai.model"
_VOICE_NS = "openai.voice"


class OpenAIModel(str, Enum):
    GPT_4O_MINI_TTS = "gpt-4o-mini-tts"
    TTS_1 = "tts-1"
    TTS_1_HD = "tts-1-hd"


class OpenAIVoice(str, Enum):
    ALLOY = "alloy"
    ASH = "ash"
    BALLAD = "ballad"
    CEDAR = "cedar"
    CORAL = "coral"
    ECHO = "echo"
    FABLE = "fable"
    MARIN = "marin"
    NOVA = "nova"
    ONYX = "onyx"
    SAGE = "sage"
    SHIMMER = "shimmer"
    VERSE = "verse"


class OpenAIProviderOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Merged verbatim into the request body.
    extra_body: Optional[Dict[str, Any]] = None


def openai_custom_speech_model_id(model_id: str) -> Custom:
    return custom(_MODEL_NS, model_id, label="OpenAI custom model id")


def openai_custom_voice(voice: str) -> Custom:
    return custom(_VOICE_NS, voice, label="OpenAI custom voice")


def resolve_openai_speech_model_id(model_id: object) -> str:
    return resolve_identifier(
        model_id,
        known=OpenAIModel,
        namespace=_MODEL_NS,
        label="OpenAI model id",
        helper="openai_custom_speech_model_id",
    )


def resolve_openai_voice(voice: object) -> str:
    if voice is None:
        return OpenAIVoice.ALLOY.value
    return resolve_identifier(
        voice,
        known=OpenAIVoice,
        namespace=_VOICE_NS,
        label="OpenAI voice",
        helper="openai_custom_voice",
    )


class OpenAITTSModel:
    """
    OpenAI `/audio/speech`. Streaming relays the chunked response body.
    """

    capabilities = Capabilities(
        supports_streaming=True,
        supports_timestamps=False,
        supports_ssml=False,
        supports_voice_cloning=False,
    )

    def __init__(self, *, model_id: str, config: ModelConfig) -> None:
        self.provider = config.provider
        self.model_id = model_id
        self._config = config

    def _body(self, options: CallOptions) -> Dict[str, Any]:
        if options.ssml:
            raise UnsupportedFunctionalityError("ssml")
        opts = parse_provider_options(
            provider="openai",
            provider_options=options.provider_options,
            schema=OpenAIProviderOptions,
        )
        payload: Dict[str, Any] = {
            "model": self.model_id,
            "input": options.text,
            "voice": resolve_openai_voice(options.voice),
            "response_format": options.output_format or "mp3",
        }
        if options.speed is not None:
            payload["speed"] = options.speed
        if options.instructions is not None:
            payload["instructions"] = options.instructions
        if opts is not None and opts.extra_body:
            payload.update(opts.extra_body)
        return payload

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:
        payload = self._body(options)
        resp = await self._config.session.request(
            "POST",
            "%s/audio/speech" % self._config.base_url,
            token=ensure_token(options.cancellation_token),
            context="OpenAI TTS request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
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
            "%s/audio/speech" % self._config.base_url,
            token=token,
            context="OpenAI TTS stream request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
        )
        return StreamResult(
            audio_stream=relay_body(stream, token),
            media_type=stream.content_type or "audio/mpeg",
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(stream.response.headers)),
            warnings=unsupported_setting_warnings(options, "language", "sample_rate"),
        )


class OpenAIProvider:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        project: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
        name: str = "openai",
        settings: Optional[OpenAISettings] = None,
    ) -> None:
        s = settings or OpenAISettings()
        self._api_key = api_key or s.api_key
        self._organization = organization or s.organization
        self._project = project or s.project
        self._extra_headers = dict(headers or {})
        self._config = ModelConfig(
            provider="%s.speech" % name,
            base_url=without_trailing_slash(base_url or s.base_url),
            headers=self._auth_headers,
            session=HttpSession(client=client, timeout_seconds=timeout_seconds),
        )

    async def _auth_headers(self) -> Dict[str, str]:
        key = load_api_key(
            api_key=self._api_key,
            environment_variable_name="OPENAI_API_KEY",
            description="OpenAI",
        )
        return with_user_agent_suffix(
            combine_headers(
                {
                    "Authorization": "Bearer %s" % key,
                    "OpenAI-Organization": self._organization,
                    "OpenAI-Project": self._project,
                },
                self._extra_headers,
            ),
            "tts-sdk/openai/%s" % VERSION,
        )

    def speech(self, model_id: object) -> OpenAITTSModel:
        return OpenAITTSModel(model_id=resolve_openai_speech_model_id(model_id), config=self._config)

    speech_model = speech


def create_openai(**kwargs: Any) -> OpenAIProvider:
    return OpenAIProvider(**kwargs)
