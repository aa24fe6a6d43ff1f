from __future__ import annotations

import math
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from tts_sdk.core.cancellation import CancellationToken, OperationCancelled, ensure_token
from tts_sdk.core.logging import get_logger
from tts_sdk.errors import (
    APICallError,
    InvalidArgumentError,
    NoSuchModelError,
    NoSuchProviderError,
    UnsupportedFunctionalityError,
)

T = TypeVar("T")

BASE_DELAY_MS = 200
MAX_DELAY_MS = 2000
RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429})


def is_retryable_status_code(status_code: Optional[int]) -> bool:
    if status_code is None:
        return False
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def parse_retry_after_ms(value: Optional[str], now: Optional[datetime] = None) -> Optional[int]:
    """
    Retry-After is either delta-seconds or an HTTP date.
    """
    if not value:
        return None
    raw = value.strip()
    if not raw:
        return None

    try:
        seconds = float(raw)
    except ValueError:
        seconds = None
    if seconds is not None:
        if math.isfinite(seconds) and seconds >= 0:
            return int(round(seconds * 1000))
        return None

    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    ref = now or datetime.now(timezone.utc)
    return max(0, int((when - ref).total_seconds() * 1000))


def get_retry_after_ms(error: BaseException, now: Optional[datetime] = None) -> Optional[int]:
    if not APICallError.is_instance(error):
        return None
    headers = getattr(error, "response_headers", None) or {}
    value = headers.get("retry-after") or headers.get("Retry-After")
    return parse_retry_after_ms(value, now)


def is_transient_error(error: BaseException) -> bool:
    if isinstance(error, OperationCancelled):
        return False
    if APICallError.is_instance(error):
        return is_retryable_status_code(getattr(error, "status_code", None))
    # DNS/TLS/connect/read failures and transport timeouts.
    return isinstance(error, httpx.TransportError)


def should_retry(error: BaseException) -> bool:
    if isinstance(error, OperationCancelled):
        return False
    if (
        InvalidArgumentError.is_instance(error)
        or UnsupportedFunctionalityError.is_instance(error)
        or NoSuchModelError.is_instance(error)
        or NoSuchProviderError.is_instance(error)
    ):
        return False
    return is_transient_error(error)


def backoff_delay_ms(attempt: int) -> int:
    """
    Full jitter: uniform in [0, min(MAX_DELAY_MS, BASE_DELAY_MS * 2**attempt)).
    """
    bound = min(MAX_DELAY_MS, BASE_DELAY_MS * (2 ** attempt))
    return int(math.floor(random.random() * bound))


def _delay_ms_for(state: RetryCallState) -> int:
    assert state.outcome is not None
    error = state.outcome.exception()
    retry_after = get_retry_after_ms(error) if error is not None else None
    if retry_after is not None:
        return retry_after
    # attempt_number is 1-based; the first retry backs off from attempt 0.
    return backoff_delay_ms(state.attempt_number - 1)


async def with_retries(
    *,
    max_retries: int,
    operation: Callable[[], Awaitable[T]],
    cancellation_token: Optional[CancellationToken] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run `operation` up to `max_retries + 1` times.

    Only transient failures are retried. The last error is re-raised unchanged;
    cancellation (before an attempt or during a backoff sleep) raises
    OperationCancelled instead.
    """
    token = ensure_token(cancellation_token)
    log = get_logger(component="retry")

    async def _sleep(seconds: float) -> None:
        if sleep is None:
            await token.sleep(seconds)
            return
        token.raise_if_cancelled()
        await sleep(seconds)
        token.raise_if_cancelled()

    def _before_sleep(state: RetryCallState) -> None:
        assert state.outcome is not None
        error = state.outcome.exception()
        delay = state.next_action.sleep if state.next_action is not None else 0.0
        log.warning(
            "retrying",
            attempt=state.attempt_number,
            max_retries=max_retries,
            delay_ms=int(round(delay * 1000)),
            error="%s: %s" % (type(error).__name__, error),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(0, max_retries) + 1),
        wait=lambda state: _delay_ms_for(state) / 1000.0,
        retry=retry_if_exception(should_retry),
        sleep=_sleep,
        before_sleep=_before_sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            token.raise_if_cancelled()
            return await operation()
    raise RuntimeError("retry loop ended without a result")  # pragma: no cover
