import pytest

from tts_sdk.core.registry import create_provider_registry, custom_provider
from tts_sdk.errors import NoSuchModelError, NoSuchProviderError
from tts_sdk.integrations.tts import Capabilities


class Model:
    capabilities = Capabilities(
        supports_streaming=False,
        supports_timestamps=False,
        supports_ssml=False,
        supports_voice_cloning=False,
    )

    def __init__(self, model_id: str) -> None:
        self.provider = "test.speech"
        self.model_id = model_id

    async def synthesize_once(self, options):  # pragma: no cover
        raise NotImplementedError


class EchoProvider:
    def speech_model(self, model_id: str) -> Model:
        return Model(model_id)


def test_resolves_provider_and_model() -> None:
    registry = create_provider_registry(providers={"echo": EchoProvider()})
    model = registry.speech_model("echo:tts-1")
    assert model.model_id == "tts-1"
    assert registry.provider_ids == ["echo"]


def test_only_first_separator_splits() -> None:
    registry = create_provider_registry(providers={"echo": EchoProvider()})
    assert registry.speech_model("echo:owner/model:abc123").model_id == "owner/model:abc123"


def test_custom_separator() -> None:
    registry = create_provider_registry(providers={"echo": EchoProvider()}, separator=" > ")
    assert registry.speech_model("echo > m").model_id == "m"


@pytest.mark.parametrize("model_id", ["echo", ":m", "echo:", ""])
def test_malformed_ids_raise_no_such_model(model_id: str) -> None:
    registry = create_provider_registry(providers={"echo": EchoProvider()})
    with pytest.raises(NoSuchModelError):
        registry.speech_model(model_id)


def test_unknown_provider() -> None:
    registry = create_provider_registry(providers={"echo": EchoProvider()})
    with pytest.raises(NoSuchProviderError) as exc:
        registry.speech_model("acme:m")
    assert exc.value.provider_id == "acme"


def test_custom_provider_prefers_static_models() -> None:
    pinned = Model("pinned")
    provider = custom_provider(speech_models={"fast": pinned}, fallback_provider=EchoProvider())
    assert provider.speech_model("fast") is pinned
    assert provider.speech_model("other").model_id == "other"


def test_custom_provider_without_fallback() -> None:
    provider = custom_provider(speech_models={"fast": Model("pinned")})
    with pytest.raises(NoSuchModelError):
        provider.speech_model("slow")


def test_custom_provider_inside_registry() -> None:
    registry = create_provider_registry(
        providers={"mine": custom_provider(speech_models={"fast": Model("pinned")})}
    )
    assert registry.speech_model("mine:fast").model_id == "pinned"
