from __future__ import annotations

from tts_sdk.core.cancellation import CancellationToken, OperationCancelled
from tts_sdk.core.execute import SynthesizeOptions, stream_synthesize, synthesize, synthesize_with_timestamps
from tts_sdk.core.registry import create_provider_registry, custom_provider
from tts_sdk.core.retry import with_retries
from tts_sdk.core.safe import (
    Err,
    Ok,
    Result,
    safe_stream_synthesize,
    safe_synthesize,
    safe_synthesize_with_timestamps,
)
from tts_sdk.errors import (
    APICallError,
    ErrorKind,
    InvalidArgumentError,
    LoadApiKeyError,
    NoAudioGeneratedError,
    NoSuchModelError,
    NoSuchProviderError,
    TTSError,
    UnsupportedFunctionalityError,
)
from tts_sdk.integrations.identifiers import Custom
from tts_sdk.integrations.srt import parse_srt
from tts_sdk.integrations.tts import (
    AudioChunk,
    CallOptions,
    CallWarning,
    Capabilities,
    ResponseMetadata,
    SpeechModel,
    StreamResult,
    SynthesisResult,
    TimedWord,
    TimeSegment,
    TimestampedResult,
)
from tts_sdk.integrations.tts_azure_openai import azure_openai_custom_voice, create_azure_openai
from tts_sdk.integrations.tts_elevenlabs import (
    create_elevenlabs,
    elevenlabs_custom_speech_model_id,
    elevenlabs_custom_voice_id,
)
from tts_sdk.integrations.tts_openai import create_openai, openai_custom_speech_model_id, openai_custom_voice
from tts_sdk.integrations.tts_qwen import create_qwen, qwen_custom_speech_model_id, qwen_custom_voice
from tts_sdk.integrations.tts_replicate import (
    MINIMAX_SPEECH_02_TURBO_MODEL,
    create_replicate,
    replicate_custom_speech_model_id,
    replicate_custom_voice,
)

__version__ = "0.1.0"

__all__ = [
    "APICallError",
    "AudioChunk",
    "CallOptions",
    "CallWarning",
    "CancellationToken",
    "Capabilities",
    "Custom",
    "Err",
    "ErrorKind",
    "InvalidArgumentError",
    "LoadApiKeyError",
    "MINIMAX_SPEECH_02_TURBO_MODEL",
    "NoAudioGeneratedError",
    "NoSuchModelError",
    "NoSuchProviderError",
    "Ok",
    "OperationCancelled",
    "ResponseMetadata",
    "Result",
    "SpeechModel",
    "StreamResult",
    "SynthesisResult",
    "SynthesizeOptions",
    "TTSError",
    "TimeSegment",
    "TimedWord",
    "TimestampedResult",
    "UnsupportedFunctionalityError",
    "azure_openai_custom_voice",
    "create_azure_openai",
    "create_elevenlabs",
    "create_openai",
    "create_provider_registry",
    "create_qwen",
    "create_replicate",
    "custom_provider",
    "elevenlabs_custom_speech_model_id",
    "elevenlabs_custom_voice_id",
    "openai_custom_speech_model_id",
    "openai_custom_voice",
    "parse_srt",
    "qwen_custom_speech_model_id",
    "qwen_custom_voice",
    "replicate_custom_speech_model_id",
    "replicate_custom_voice",
    "safe_stream_synthesize",
    "safe_synthesize",
    "safe_synthesize_with_timestamps",
    "stream_synthesize",
    "synthesize",
    "synthesize_with_timestamps",
    "with_retries",
]
