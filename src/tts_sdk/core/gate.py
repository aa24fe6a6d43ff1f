from __future__ import annotations

from typing import Optional

from tts_sdk.errors import InvalidArgumentError, NoAudioGeneratedError, UnsupportedFunctionalityError
from tts_sdk.integrations.tts import ResponseMetadata, SpeechModel


def assert_model(model: object) -> None:
    if model is None:
        raise InvalidArgumentError("model must be a valid TTS model instance.")
    if not callable(getattr(model, "synthesize_once", None)):
        raise InvalidArgumentError("model.synthesize_once must be a function.")
    if getattr(model, "capabilities", None) is None:
        raise InvalidArgumentError("model.capabilities is required.")


def assert_ssml_support(model: SpeechModel, ssml: Optional[str]) -> None:
    if ssml and not model.capabilities.supports_ssml:
        raise UnsupportedFunctionalityError(
            "ssml",
            "%s:%s does not support SSML." % (model.provider, model.model_id),
        )


def assert_streaming_support(model: SpeechModel) -> None:
    if not model.capabilities.supports_streaming or not callable(getattr(model, "synthesize_stream", None)):
        raise UnsupportedFunctionalityError("streamSynthesize")


def assert_timestamp_support(model: SpeechModel) -> None:
    if not model.capabilities.supports_timestamps or not callable(
        getattr(model, "synthesize_with_timestamps", None)
    ):
        raise UnsupportedFunctionalityError("synthesizeWithTimestamps")


def assert_has_audio(audio: bytes, response: ResponseMetadata) -> None:
    if len(audio) == 0:
        raise NoAudioGeneratedError([response])
