from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, TypeVar, Union

from tts_sdk.core.cancellation import OperationCancelled
from tts_sdk.core.execute import SynthesizeOptions, stream_synthesize, synthesize, synthesize_with_timestamps
from tts_sdk.errors import TTSError
from tts_sdk.integrations.tts import StreamResult, SynthesisResult, TimestampedResult

T = TypeVar("T")

SafeError = Union[TTSError, OperationCancelled]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: SafeError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok[T], Err]


def to_result_error(error: Exception) -> SafeError:
    if isinstance(error, (TTSError, OperationCancelled)):
        return error
    return TTSError(str(error) or type(error).__name__, cause=error)


async def _capture(aw: Awaitable[T]) -> "Result[T]":
    try:
        return Ok(await aw)
    except Exception as e:
        return Err(to_result_error(e))


async def safe_synthesize(options: Optional[SynthesizeOptions] = None, **kwargs: Any) -> "Result[SynthesisResult]":
    return await _capture(synthesize(options, **kwargs))


async def safe_stream_synthesize(options: Optional[SynthesizeOptions] = None, **kwargs: Any) -> "Result[StreamResult]":
    return await _capture(stream_synthesize(options, **kwargs))


async def safe_synthesize_with_timestamps(
    options: Optional[SynthesizeOptions] = None, **kwargs: Any
) -> "Result[TimestampedResult]":
    return await _capture(synthesize_with_timestamps(options, **kwargs))
