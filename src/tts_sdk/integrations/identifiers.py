from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tts_sdk.errors import InvalidArgumentError

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Custom:
    """
    Explicitly tagged identifier outside a provider's known set.

    Plain strings are only accepted when they match a known value; anything else
    has to be wrapped (e.g. `openai_custom_voice("my-voice")`) so typos never
    reach a vendor API silently.
    """

    namespace: str
    value: str


def require_non_empty(value: str, label: str) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise InvalidArgumentError("%s must be a non-empty string." % label)
    return normalized


def custom(namespace: str, value: str, *, label: str) -> Custom:
    return Custom(namespace=namespace, value=require_non_empty(value, label))


def resolve_identifier(
    value: object,
    *,
    known: Type[Enum],
    namespace: str,
    label: str,
    helper: str,
) -> str:
    """
    Resolve Known(enum) | Custom(string) to the wire value.
    """
    if isinstance(value, known):
        return str(value.value)

    if isinstance(value, Custom):
        if value.namespace != namespace:
            raise InvalidArgumentError(
                "%s '%s' was tagged for '%s'; use %s('...')." % (label, value.value, value.namespace, helper)
            )
        return require_non_empty(value.value, "%s custom value" % label)

    if isinstance(value, str):
        for member in known:
            if member.value == value:
                return value

    raise InvalidArgumentError(
        "Invalid %s '%s'. Use one of: %s, or %s('...')."
        % (label, value, ", ".join(str(m.value) for m in known), helper)
    )


def decode_custom(value: object, *, namespace: str, label: str) -> Optional[str]:
    """
    Unwrap a Custom of this namespace; returns None for anything else.
    """
    if isinstance(value, Custom) and value.namespace == namespace:
        return require_non_empty(value.value, label)
    return None


def parse_provider_options(
    *,
    provider: str,
    provider_options: Optional[Mapping[str, Any]],
    schema: Type[M],
) -> Optional[M]:
    raw = (provider_options or {}).get(provider)
    if raw is None:
        return None
    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        raise InvalidArgumentError("Invalid provider_options.%s: %s" % (provider, e), cause=e)
