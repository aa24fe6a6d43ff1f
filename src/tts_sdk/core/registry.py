from __future__ import annotations

from typing import Mapping, Optional

from tts_sdk.errors import NoSuchModelError, NoSuchProviderError
from tts_sdk.integrations.tts import Provider, SpeechModel


class CustomProvider:
    """
    Static model map first, then an optional fallback provider.
    """

    def __init__(
        self,
        *,
        speech_models: Optional[Mapping[str, SpeechModel]] = None,
        fallback_provider: Optional[Provider] = None,
    ) -> None:
        self._speech_models = dict(speech_models or {})
        self._fallback = fallback_provider

    def speech_model(self, model_id: str) -> SpeechModel:
        model = self._speech_models.get(model_id)
        if model is not None:
            return model
        if self._fallback is not None:
            return self._fallback.speech_model(model_id)
        raise NoSuchModelError(model_id)


class ProviderRegistry:
    """
    Resolves "provider:model" ids to adapters.
    """

    def __init__(self, *, providers: Mapping[str, Provider], separator: str = ":") -> None:
        if not separator:
            raise ValueError("separator must be non-empty")
        self._providers = dict(providers)
        self._separator = separator

    @property
    def provider_ids(self) -> list[str]:
        return sorted(self._providers)

    def speech_model(self, model_id: str) -> SpeechModel:
        idx = model_id.find(self._separator)
        if idx <= 0 or idx + len(self._separator) >= len(model_id):
            raise NoSuchModelError(model_id)

        provider_id = model_id[:idx]
        inner_model_id = model_id[idx + len(self._separator):]
        provider = self._providers.get(provider_id)
        if provider is None:
            raise NoSuchProviderError(provider_id)
        return provider.speech_model(inner_model_id)


def custom_provider(
    *,
    speech_models: Optional[Mapping[str, SpeechModel]] = None,
    fallback_provider: Optional[Provider] = None,
) -> CustomProvider:
    return CustomProvider(speech_models=speech_models, fallback_provider=fallback_provider)


def create_provider_registry(*, providers: Mapping[str, Provider], separator: str = ":") -> ProviderRegistry:
    return ProviderRegistry(providers=providers, separator=separator)
