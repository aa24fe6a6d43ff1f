from tts_sdk.errors import (
    APICallError,
    ErrorKind,
    InvalidArgumentError,
    NoAudioGeneratedError,
    NoSuchModelError,
    NoSuchProviderError,
    TTSError,
    UnsupportedFunctionalityError,
)
from tts_sdk.integrations.tts import ResponseMetadata


def test_is_instance_uses_kind_not_class() -> None:
    class Foreign(Exception):
        kind = "tts.error.InvalidArgument"

    assert InvalidArgumentError.is_instance(InvalidArgumentError("bad"))
    assert InvalidArgumentError.is_instance(Foreign())
    assert not APICallError.is_instance(Foreign())
    assert not InvalidArgumentError.is_instance(ValueError("bad"))


def test_is_instance_accepts_serialized_errors() -> None:
    err = APICallError("boom", status_code=503, response_headers={"x": "1"}, response_body={"e": 1})
    data = err.to_dict()

    assert data["kind"] == ErrorKind.API_CALL.value
    assert data["status_code"] == 503
    assert data["response_body"] == {"e": 1}
    assert APICallError.is_instance(data)
    assert TTSError.is_instance(data)
    assert not NoSuchModelError.is_instance(data)


def test_base_is_instance_matches_any_tagged_error() -> None:
    assert TTSError.is_instance(NoSuchProviderError("x"))
    assert TTSError.is_instance(TTSError("untagged"))
    assert not TTSError.is_instance({"kind": "something.else"})


def test_context_fields() -> None:
    assert NoSuchModelError("openai:nope").model_id == "openai:nope"
    assert NoSuchProviderError("acme").to_dict()["provider_id"] == "acme"

    unsupported = UnsupportedFunctionalityError("ssml")
    assert unsupported.functionality == "ssml"
    assert "ssml" in unsupported.message

    meta = ResponseMetadata(model_id="m")
    no_audio = NoAudioGeneratedError([meta])
    assert no_audio.responses == [meta]
    assert no_audio.to_dict()["responses"] == ["m"]


def test_cause_is_chained() -> None:
    cause = ValueError("inner")
    err = APICallError("outer", cause=cause)
    assert err.cause is cause
    assert err.__cause__ is cause
