from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from tts_sdk.integrations.tts import ResponseMetadata


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "tts.error.InvalidArgument"
    LOAD_API_KEY = "tts.error.LoadApiKeyFailure"
    NO_AUDIO_GENERATED = "tts.error.NoAudioGenerated"
    UNSUPPORTED_FUNCTIONALITY = "tts.error.UnsupportedFunctionality"
    API_CALL = "tts.error.APICallFailure"
    NO_SUCH_MODEL = "tts.error.NoSuchModel"
    NO_SUCH_PROVIDER = "tts.error.NoSuchProvider"


def _kind_of(error: object) -> Optional[str]:
    """
    Read the discriminant from an error instance or from its serialized dict form.
    """
    if isinstance(error, Mapping):
        raw = error.get("kind")
    else:
        raw = getattr(error, "kind", None)
    if isinstance(raw, Enum):
        raw = raw.value
    return raw if isinstance(raw, str) else None


class TTSError(Exception):
    """
    Base for every error raised by the SDK.

    Identity is decided by the `kind` discriminant, never by class identity, so
    errors created by another copy of this module (or rebuilt from `to_dict()`)
    are still recognized by `is_instance`.
    """

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def is_instance(cls, error: object) -> bool:
        kind = _kind_of(error)
        if cls.kind is None:
            if isinstance(error, TTSError):
                return True
            return kind is not None and kind in _KIND_VALUES
        return kind == cls.kind.value

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "kind": self.kind.value if self.kind is not None else None,
            "name": type(self).__name__,
            "message": self.message,
        }
        out.update(self._context())
        return out

    def _context(self) -> Dict[str, Any]:
        return {}


_KIND_VALUES = frozenset(k.value for k in ErrorKind)


class InvalidArgumentError(TTSError):
    kind = ErrorKind.INVALID_ARGUMENT


class LoadApiKeyError(TTSError):
    kind = ErrorKind.LOAD_API_KEY


class NoAudioGeneratedError(TTSError):
    kind = ErrorKind.NO_AUDIO_GENERATED

    def __init__(self, responses: List["ResponseMetadata"]) -> None:
        super().__init__("No audio was generated.")
        self.responses = list(responses)

    def _context(self) -> Dict[str, Any]:
        return {"responses": [r.model_id for r in self.responses]}


class UnsupportedFunctionalityError(TTSError):
    kind = ErrorKind.UNSUPPORTED_FUNCTIONALITY

    def __init__(self, functionality: str, message: Optional[str] = None) -> None:
        super().__init__(message or "'%s' functionality is not supported." % functionality)
        self.functionality = functionality

    def _context(self) -> Dict[str, Any]:
        return {"functionality": self.functionality}


class APICallError(TTSError):
    kind = ErrorKind.API_CALL

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_headers: Optional[Dict[str, str]] = None,
        response_body: Any = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.response_headers = response_headers
        self.response_body = response_body

    def _context(self) -> Dict[str, Any]:
        return {
            "status_code": self.status_code,
            "response_headers": self.response_headers,
            "response_body": self.response_body,
        }


class NoSuchModelError(TTSError):
    kind = ErrorKind.NO_SUCH_MODEL

    def __init__(self, model_id: str) -> None:
        super().__init__("No model found for id '%s'." % model_id)
        self.model_id = model_id

    def _context(self) -> Dict[str, Any]:
        return {"model_id": self.model_id}


class NoSuchProviderError(TTSError):
    kind = ErrorKind.NO_SUCH_PROVIDER

    def __init__(self, provider_id: str) -> None:
        super().__init__("No provider found for id '%s'." % provider_id)
        self.provider_id = provider_id

    def _context(self) -> Dict[str, Any]:
        return {"provider_id": self.provider_id}
