from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tts_sdk.config import ElevenLabsSettings, load_api_key, without_trailing_slash
from tts_sdk.core.cancellation import ensure_token
from tts_sdk.integrations.http import (
    HttpSession,
    ModelConfig,
    combine_headers,
    decode_base64,
    headers_to_dict,
    parse_json,
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
    TimedWord,
    TimeSegment,
    TimestampedResult,
    unsupported_setting_warnings,
)

VERSION = "0.1.0"
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"

_MODEL_NS = "elevenlabs.model"
_VOICE_NS = "elevenlabs.voice"


class ElevenLabsModel(str, Enum):
    FLASH_V2_5 = "eleven_flash_v2_5"
    TURBO_V2_5 = "eleven_turbo_v2_5"
    MULTILINGUAL_V2 = "eleven_multilingual_v2"


class ElevenLabsVoice(str, Enum):
    RACHEL = "21m00Tcm4TlvDq8ikWAM"


class ElevenLabsProviderOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    language_code: Optional[str] = None
    seed: Optional[int] = None
    stability: Optional[float] = Field(default=None, ge=0, le=1)
    similarity_boost: Optional[float] = Field(default=None, ge=0, le=1)
    style: Optional[float] = Field(default=None, ge=0, le=1)
    use_speaker_boost: Optional[bool] = None


def elevenlabs_custom_speech_model_id(model_id: str) -> Custom:
    return custom(_MODEL_NS, model_id, label="ElevenLabs custom model id")


def elevenlabs_custom_voice_id(voice_id: str) -> Custom:
    return custom(_VOICE_NS, voice_id, label="ElevenLabs custom voice id")


def resolve_elevenlabs_speech_model_id(model_id: object) -> str:
    return resolve_identifier(
        model_id,
        known=ElevenLabsModel,
        namespace=_MODEL_NS,
        label="ElevenLabs model id",
        helper="elevenlabs_custom_speech_model_id",
    )


def resolve_elevenlabs_voice_id(voice_id: object) -> str:
    if voice_id is None:
        return ElevenLabsVoice.RACHEL.value
    return resolve_identifier(
        voice_id,
        known=ElevenLabsVoice,
        namespace=_VOICE_NS,
        label="ElevenLabs voice id",
        helper="elevenlabs_custom_voice_id",
    )


def build_word_timings(alignment: Dict[str, Any]) -> List[TimedWord]:
    """
    Fold character-level alignment into words (whitespace separates words).
    """
    chars = alignment.get("characters") or []
    starts = alignment.get("character_start_times_seconds") or []
    ends = alignment.get("character_end_times_seconds") or []

    words: List[TimedWord] = []
    current = ""
    cur_start = 0
    cur_end = 0
    for i, ch in enumerate(chars):
        if i >= len(starts) or i >= len(ends):
            break
        if not str(ch).strip():
            if current:
                words.append(TimedWord(word=current, start_ms=cur_start, end_ms=cur_end))
                current = ""
            continue
        if not current:
            cur_start = max(0, int(round(float(starts[i]) * 1000)))
        current += str(ch)
        cur_end = max(cur_start, int(round(float(ends[i]) * 1000)))

    if current:
        words.append(TimedWord(word=current, start_ms=cur_start, end_ms=cur_end))
    return words


class ElevenLabsTTSModel:
    capabilities = Capabilities(
        supports_streaming=True,
        supports_timestamps=True,
        supports_ssml=False,
        supports_voice_cloning=True,
    )

    def __init__(self, *, model_id: str, config: ModelConfig) -> None:
        self.provider = config.provider
        self.model_id = model_id
        self._config = config

    def _args(self, options: CallOptions) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        opts = parse_provider_options(
            provider="elevenlabs",
            provider_options=options.provider_options,
            schema=ElevenLabsProviderOptions,
        )
        voice_id = resolve_elevenlabs_voice_id(options.voice)
        params = {"output_format": options.output_format or DEFAULT_OUTPUT_FORMAT}

        payload: Dict[str, Any] = {
            "text": options.text,
            "model_id": self.model_id,
        }
        language = options.language or (opts.language_code if opts else None)
        if language:
            payload["language_code"] = language

        voice_settings: Dict[str, Any] = {}
        if options.speed is not None:
            voice_settings["speed"] = options.speed
        if opts is not None:
            for key in ("stability", "similarity_boost", "style", "use_speaker_boost"):
                value = getattr(opts, key)
                if value is not None:
                    voice_settings[key] = value
            if opts.seed is not None:
                payload["seed"] = opts.seed
        if voice_settings:
            payload["voice_settings"] = voice_settings

        return voice_id, params, payload

    async def _headers(self, options: CallOptions) -> Dict[str, str]:
        return combine_headers(await self._config.headers(), options.headers)

    def _metadata(self, headers: Dict[str, str], body: Any = None) -> ResponseMetadata:
        return ResponseMetadata(model_id=self.model_id, headers=headers, body=body)

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:
        voice_id, params, payload = self._args(options)
        url = "%s/v1/text-to-speech/%s" % (self._config.base_url, voice_id)
        resp = await self._config.session.request(
            "POST",
            url,
            token=ensure_token(options.cancellation_token),
            context="ElevenLabs TTS request",
            json_body=payload,
            headers=await self._headers(options),
            params=params,
        )
        return SynthesisResult(
            audio=resp.content,
            media_type=resp.headers.get("content-type", "audio/mpeg"),
            response=self._metadata(headers_to_dict(resp.headers)),
            warnings=unsupported_setting_warnings(options, "instructions", "sample_rate"),
        )

    async def synthesize_stream(self, options: CallOptions) -> StreamResult:
        voice_id, params, payload = self._args(options)
        token = ensure_token(options.cancellation_token)
        url = "%s/v1/text-to-speech/%s/stream" % (self._config.base_url, voice_id)
        stream = await self._config.session.open_stream(
            "POST",
            url,
            token=token,
            context="ElevenLabs TTS stream request",
            json_body=payload,
            headers=await self._headers(options),
            params=params,
        )
        return StreamResult(
            audio_stream=relay_body(stream, token),
            media_type=stream.content_type or "audio/mpeg",
            response=self._metadata(headers_to_dict(stream.response.headers)),
            warnings=unsupported_setting_warnings(options, "instructions", "sample_rate"),
        )

    async def synthesize_with_timestamps(self, options: CallOptions) -> TimestampedResult:
        voice_id, params, payload = self._args(options)
        url = "%s/v1/text-to-speech/%s/with-timestamps" % (self._config.base_url, voice_id)
        resp = await self._config.session.request(
            "POST",
            url,
            token=ensure_token(options.cancellation_token),
            context="ElevenLabs timestamp TTS request",
            json_body=payload,
            headers=await self._headers(options),
            params=params,
        )
        data = parse_json(resp, "ElevenLabs timestamp TTS request")
        alignment = data.get("alignment") if isinstance(data, dict) else None
        words = build_word_timings(alignment) if isinstance(alignment, dict) else []
        audio_b64 = data.get("audio_base64") if isinstance(data, dict) else None

        return TimestampedResult(
            audio=decode_base64(audio_b64) if isinstance(audio_b64, str) else b"",
            media_type="audio/mpeg",
            response=self._metadata(headers_to_dict(resp.headers), body=data),
            warnings=unsupported_setting_warnings(options, "instructions", "sample_rate"),
            words=words,
            segments=[TimeSegment(text=w.word, start_ms=w.start_ms, end_ms=w.end_ms) for w in words],
        )


class ElevenLabsProvider:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
        name: str = "elevenlabs",
        settings: Optional[ElevenLabsSettings] = None,
    ) -> None:
        s = settings or ElevenLabsSettings()
        self._api_key = api_key or s.api_key
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
            environment_variable_name="ELEVENLABS_API_KEY",
            description="ElevenLabs",
        )
        return with_user_agent_suffix(
            combine_headers({"xi-api-key": key}, self._extra_headers),
            "tts-sdk/elevenlabs/%s" % VERSION,
        )

    def speech(self, model_id: object) -> ElevenLabsTTSModel:
        return ElevenLabsTTSModel(model_id=resolve_elevenlabs_speech_model_id(model_id), config=self._config)

    speech_model = speech


def create_elevenlabs(**kwargs: Any) -> ElevenLabsProvider:
    return ElevenLabsProvider(**kwargs)
