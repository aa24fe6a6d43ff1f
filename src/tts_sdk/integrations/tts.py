from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union, runtime_checkable

from tts_sdk.core.cancellation import CancellationToken
from tts_sdk.integrations.identifiers import Custom

Voice = Union[str, Enum, Custom]
ProviderOptions = Dict[str, Dict[str, Any]]


@dataclass(frozen=True)
class Capabilities:
    supports_streaming: bool
    supports_timestamps: bool
    supports_ssml: bool
    supports_voice_cloning: bool


@dataclass(frozen=True)
class CallOptions:
    """
    Vendor-agnostic request handed to an adapter. Read-only once built.
    """

    text: str
    voice: Optional[Voice] = None
    language: Optional[str] = None
    speed: Optional[float] = None
    instructions: Optional[str] = None
    ssml: Optional[str] = None
    output_format: Optional[str] = None
    sample_rate: Optional[int] = None
    provider_options: Optional[ProviderOptions] = None
    headers: Optional[Dict[str, str]] = None
    cancellation_token: Optional[CancellationToken] = None


@dataclass(frozen=True)
class CallWarning:
    type: str  # unsupported-setting | other
    setting: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class ResponseMetadata:
    model_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    headers: Optional[Dict[str, str]] = None
    body: Any = None


@dataclass(frozen=True)
class SynthesisResult:
    audio: bytes
    media_type: str
    response: ResponseMetadata
    warnings: List[CallWarning] = field(default_factory=list)


@dataclass(frozen=True)
class AudioChunk:
    data: bytes
    is_final: bool = False


@dataclass(frozen=True)
class StreamResult:
    audio_stream: AsyncIterator[AudioChunk]
    media_type: str
    response: ResponseMetadata
    warnings: List[CallWarning] = field(default_factory=list)


@dataclass(frozen=True)
class TimedWord:
    word: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class TimeSegment:
    text: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class TimestampedResult(SynthesisResult):
    words: List[TimedWord] = field(default_factory=list)
    segments: List[TimeSegment] = field(default_factory=list)


@runtime_checkable
class SpeechModel(Protocol):
    """
    Contract every vendor adapter implements.

    `synthesize_stream` and `synthesize_with_timestamps` are optional: an adapter
    that lacks them simply doesn't define the method, and the capability gate
    reports the call as unsupported.
    """

    provider: str
    model_id: str
    capabilities: Capabilities

    async def synthesize_once(self, options: CallOptions) -> SynthesisResult:  # pragma: no cover
        ...


class Provider(Protocol):
    def speech_model(self, model_id: str) -> SpeechModel:  # pragma: no cover
        ...


def unsupported_setting_warnings(options: CallOptions, *settings: str) -> List[CallWarning]:
    """
    Warnings for normalized fields the vendor has no knob for (the value is dropped).
    """
    out: List[CallWarning] = []
    for name in settings:
        if getattr(options, name, None) is not None:
            out.append(
                CallWarning(
                    type="unsupported-setting",
                    setting=name,
                    message="%s is not supported by this provider and was ignored." % name,
                )
            )
    return out
