from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tts_sdk.config import QwenSettings, load_api_key, without_trailing_slash
from tts_sdk.core.cancellation import ensure_token
from tts_sdk.errors import UnsupportedFunctionalityError
from tts_sdk.integrations.http import (
    HttpSession,
    ModelConfig,
    combine_headers,
    headers_to_dict,
    relay_body,
    relay_sse,
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

_MODEL_NS = "qwen.model"
_VOICE_NS = "qwen.voice"


class QwenModel(str, Enum):
    QWEN3_TTS_FLASH = "qwen3-tts-flash"
    QWEN_TTS = "qwen-tts"
    QWEN_TTS_LATEST = "qwen-tts-latest"


class QwenVoice(str, Enum):
    AIDEN = "Aiden"
    ALEK = "Alek"
    ANDRE = "Andre"
    ARTHUR = "Arthur"
    BELLA = "Bella"
    BELLONA = "Bellona"
    BODEGA = "Bodega"
    BUNNY = "Bunny"
    CHELSIE = "Chelsie"
    CHERRY = "Cherry"
    DOLCE = "Dolce"
    DYLAN = "Dylan"
    EBONA = "Ebona"
    ELDRIC_SAGE = "Eldric Sage"
    ELIAS = "Elias"
    EMILIEN = "Emilien"
    ERIC = "Eric"
    ETHAN = "Ethan"
    JADA = "Jada"
    JENNIFER = "Jennifer"
    KAI = "Kai"
    KATERINA = "Katerina"
    KIKI = "Kiki"
    LENN = "Lenn"
    LI = "Li"
    MAIA = "Maia"
    MARCUS = "Marcus"
    MIA = "Mia"
    MOCHI = "Mochi"
    MOMO = "Momo"
    MOON = "Moon"
    NEIL = "Neil"
    NINI = "Nini"
    NOFISH = "Nofish"
    ONO_ANNA = "Ono Anna"
    PETER = "Peter"
    PIP = "Pip"
    RADIO_GOL = "Radio Gol"
    ROCKY = "Rocky"
    ROY = "Roy"
    RYAN = "Ryan"
    SEREN = "Seren"
    SERENA = "Serena"
    SOHEE = "Sohee"
    SONRISA = "Sonrisa"
    STELLA = "Stella"
    SUNNY = "Sunny"
    VINCENT = "Vincent"
    VIVIAN = "Vivian"


class QwenProviderOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    pitch: Optional[float] = None
    volume: Optional[float] = None
    emotion: Optional[str] = None
    extra_body: Optional[Dict[str, Any]] = None


def qwen_custom_speech_model_id(model_id: str) -> Custom:
    return custom(_MODEL_NS, model_id, label="Qwen custom model id")


def qwen_custom_voice(voice: str) -> Custom:
    return custom(_VOICE_NS, voice, label="Qwen custom voice")


def resolve_qwen_speech_model_id(model_id: object) -> str:
    return resolve_identifier(
        model_id,
        known=QwenModel,
        namespace=_MODEL_NS,
        label="Qwen model id",
        helper="qwen_custom_speech_model_id",
    )


def resolve_qwen_voice(voice: object) -> Optional[str]:
    # The service picks its own default voice when none is sent.
    if voice is None:
        return None
    return resolve_identifier(
        voice,
        known=QwenVoice,
        namespace=_VOICE_NS,
        label="Qwen voice",
        helper="qwen_custom_voice",
    )


class QwenTTSModel:
    """
    DashScope OpenAI-compatible `/audio/speech`.

    With `stream: true` the service answers either with `text/event-stream`
    frames carrying base64 audio, or with a plain chunked body; both are relayed.
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

    def _url(self) -> str:
        return "%s/audio/speech" % self._config.base_url

    def _body(self, options: CallOptions, *, stream: bool) -> Dict[str, Any]:
        if options.ssml:
            raise UnsupportedFunctionalityError("ssml")
        opts = parse_provider_options(
            provider="qwen",
            provider_options=options.provider_options,
            schema=QwenProviderOptions,
        )
        payload: Dict[str, Any] = {
            "model": self.model_id,
            "input": options.text,
            "response_format": options.output_format or "mp3",
        }
        voice = resolve_qwen_voice(options.voice)
        if voice is not None:
            payload["voice"] = voice
        if options.speed is not None:
            payload["speed"] = options.speed
        if stream:
            payload["stream"] = True
        if opts is not None:
            for key in ("pitch", "volume", "emotion"):
                value = getattr(opts, key)
                if value is not None:
                    payload[key] = value
            if opts.extra_body:
                payload.update(opts.extra_body)
        return payload

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:
        payload = self._body(options, stream=False)
        resp = await self._config.session.request(
            "POST",
            self._url(),
            token=ensure_token(options.cancellation_token),
            context="Qwen TTS request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
        )
        return SynthesisResult(
            audio=resp.content,
            media_type=resp.headers.get("content-type", "audio/mpeg"),
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(resp.headers)),
            warnings=unsupported_setting_warnings(options, "language", "instructions", "sample_rate"),
        )

    async def synthesize_stream(self, options: CallOptions) -> StreamResult:
        payload = self._body(options, stream=True)
        token = ensure_token(options.cancellation_token)
        stream = await self._config.session.open_stream(
            "POST",
            self._url(),
            token=token,
            context="Qwen TTS stream request",
            json_body=payload,
            headers=combine_headers(await self._config.headers(), options.headers),
        )
        content_type = stream.content_type or ""
        if "text/event-stream" in content_type:
            audio_stream = relay_sse(stream, token)
            media_type = "audio/mpeg"
        else:
            audio_stream = relay_body(stream, token)
            media_type = content_type or "audio/mpeg"
        return StreamResult(
            audio_stream=audio_stream,
            media_type=media_type,
            response=ResponseMetadata(model_id=self.model_id, headers=headers_to_dict(stream.response.headers)),
            warnings=unsupported_setting_warnings(options, "language", "instructions", "sample_rate"),
        )


class QwenProvider:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
        name: str = "qwen",
        settings: Optional[QwenSettings] = None,
    ) -> None:
        s = settings or QwenSettings()
        self._api_key = api_key or s.resolved_api_key
        self._extra_headers = dict(headers or {})
        self._config = ModelConfig(
            provider="%s.speech" % name,
            base_url=without_trailing_slash(base_url or s.resolved_base_url),
            headers=self._auth_headers,
            session=HttpSession(client=client, timeout_seconds=timeout_seconds),
        )

    async def _auth_headers(self) -> Dict[str, str]:
        key = load_api_key(
            api_key=self._api_key,
            environment_variable_name="ALIBABA_API_KEY",
            description="Qwen",
        )
        return with_user_agent_suffix(
            combine_headers({"Authorization": "Bearer %s" % key}, self._extra_headers),
            "tts-sdk/qwen/%s" % VERSION,
        )

    def speech(self, model_id: object) -> QwenTTSModel:
        return QwenTTSModel(model_id=resolve_qwen_speech_model_id(model_id), config=self._config)

    speech_model = speech


def create_qwen(**kwargs: Any) -> QwenProvider:
    return QwenProvider(**kwargs)
