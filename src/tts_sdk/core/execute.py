from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from pydantic import ValidationError

from tts_sdk.core.cancellation import CancellationToken
from tts_sdk.core.gate import (
    assert_has_audio,
    assert_model,
    assert_ssml_support,
    assert_streaming_support,
    assert_timestamp_support,
)
from tts_sdk.core.logging import get_logger
from tts_sdk.core.retry import with_retries
from tts_sdk.core.schemas import SynthesizeOptionsSchema
from tts_sdk.errors import InvalidArgumentError
from tts_sdk.integrations.tts import (
    AudioChunk,
    CallOptions,
    ProviderOptions,
    ResponseMetadata,
    SpeechModel,
    StreamResult,
    SynthesisResult,
    TimestampedResult,
    Voice,
)

R = TypeVar("R")

DEFAULT_MAX_RETRIES = 2


@dataclass
class SynthesizeOptions:
    """
    Caller-owned request: the adapter plus normalized call fields.
    """

    model: SpeechModel
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
    max_retries: Optional[int] = None
    cancellation_token: Optional[CancellationToken] = None


def _coerce_options(options: Optional[SynthesizeOptions], kwargs: Dict[str, Any]) -> SynthesizeOptions:
    if options is not None:
        if kwargs:
            return dataclasses.replace(options, **kwargs)
        return options
    try:
        return SynthesizeOptions(**kwargs)
    except TypeError as e:
        raise InvalidArgumentError("Invalid synthesize options: %s" % e, cause=e)


def validate_options(options: SynthesizeOptions) -> SynthesizeOptions:
    assert_model(options.model)
    try:
        SynthesizeOptionsSchema.model_validate(
            {
                "text": options.text,
                "language": options.language,
                "speed": options.speed,
                "instructions": options.instructions,
                "ssml": options.ssml,
                "output_format": options.output_format,
                "sample_rate": options.sample_rate,
                "provider_options": options.provider_options,
                "headers": options.headers,
                "max_retries": options.max_retries,
            }
        )
    except ValidationError as e:
        raise InvalidArgumentError(str(e), cause=e)
    return options


def to_call_options(options: SynthesizeOptions) -> CallOptions:
    return CallOptions(
        text=options.text,
        voice=options.voice,
        language=options.language,
        speed=options.speed,
        instructions=options.instructions,
        ssml=options.ssml,
        output_format=options.output_format,
        sample_rate=options.sample_rate,
        provider_options=options.provider_options,
        headers=options.headers,
        cancellation_token=options.cancellation_token,
    )


async def execute(
    options: SynthesizeOptions,
    *,
    run: Callable[[SpeechModel, CallOptions], Awaitable[R]],
    assert_capabilities: Optional[Callable[[SpeechModel], None]] = None,
    get_audio_and_response: Optional[Callable[[R], Tuple[bytes, ResponseMetadata]]] = None,
) -> R:
    """
    validate -> gate -> retry(run) -> audio check. Gate failures never count as attempts.
    """
    validated = validate_options(options)
    model = validated.model
    assert_ssml_support(model, validated.ssml)
    if assert_capabilities is not None:
        assert_capabilities(model)

    call_options = to_call_options(validated)
    max_retries = validated.max_retries if validated.max_retries is not None else DEFAULT_MAX_RETRIES

    log = get_logger(component="execute", provider=model.provider, model_id=model.model_id)
    try:
        result = await with_retries(
            max_retries=max_retries,
            cancellation_token=validated.cancellation_token,
            operation=lambda: run(model, call_options),
        )
    except Exception as e:
        log.info("synthesis_failed", error="%s: %s" % (type(e).__name__, e))
        raise

    if get_audio_and_response is not None:
        audio, response = get_audio_and_response(result)
        assert_has_audio(audio, response)

    return result


async def ensure_terminal_chunk(stream: AsyncIterator[AudioChunk]) -> AsyncIterator[AudioChunk]:
    """
    Relay an adapter stream so it ends with exactly one `is_final` chunk.
    """
    try:
        async for chunk in stream:
            yield chunk
            if chunk.is_final:
                return
        yield AudioChunk(data=b"", is_final=True)
    finally:
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()


async def synthesize(options: Optional[SynthesizeOptions] = None, **kwargs: Any) -> SynthesisResult:
    return await execute(
        _coerce_options(options, kwargs),
        run=lambda model, call: model.synthesize_once(call),
        get_audio_and_response=lambda r: (r.audio, r.response),
    )


async def stream_synthesize(options: Optional[SynthesizeOptions] = None, **kwargs: Any) -> StreamResult:
    result: StreamResult = await execute(
        _coerce_options(options, kwargs),
        assert_capabilities=assert_streaming_support,
        run=lambda model, call: model.synthesize_stream(call),  # type: ignore[attr-defined]
    )
    return dataclasses.replace(result, audio_stream=ensure_terminal_chunk(result.audio_stream))


async def synthesize_with_timestamps(
    options: Optional[SynthesizeOptions] = None, **kwargs: Any
) -> TimestampedResult:
    return await execute(
        _coerce_options(options, kwargs),
        assert_capabilities=assert_timestamp_support,
        run=lambda model, call: model.synthesize_with_timestamps(call),  # type: ignore[attr-defined]
        get_audio_and_response=lambda r: (r.audio, r.response),
    )
