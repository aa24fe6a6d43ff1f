import pytest

from tts_sdk.config import (
    AppSettings,
    AzureOpenAISettings,
    OpenAISettings,
    QwenSettings,
    ReplicateSettings,
    load_api_key,
)
from tts_sdk.errors import LoadApiKeyError


def test_load_api_key_prefers_explicit_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TTS_SDK_TEST_KEY", "from-env")
    assert load_api_key(api_key="explicit", environment_variable_name="TTS_SDK_TEST_KEY", description="Test") == "explicit"


def test_load_api_key_falls_back_to_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TTS_SDK_TEST_KEY", '"quoted"')
    assert load_api_key(api_key=None, environment_variable_name="TTS_SDK_TEST_KEY", description="Test") == "quoted"


def test_load_api_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TTS_SDK_TEST_KEY", raising=False)
    with pytest.raises(LoadApiKeyError) as exc:
        load_api_key(
            api_key="  ",
            environment_variable_name="TTS_SDK_TEST_KEY",
            description="Test",
            api_key_parameter_name="api_token",
        )
    assert "api_token" in exc.value.message
    assert "TTS_SDK_TEST_KEY" in exc.value.message


def test_settings_strip_quotes_and_slashes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_BASE_URL", "'https://proxy.example/v1/'")
    monkeypatch.setenv("OPENAI_API_KEY", '"sk-test"')
    s = OpenAISettings()
    assert s.base_url == "https://proxy.example/v1"
    assert s.api_key == "sk-test"


def test_qwen_settings_accept_dashscope_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ALIBABA_API_KEY", raising=False)
    monkeypatch.delenv("ALIBABA_BASE_URL", raising=False)
    monkeypatch.setenv("DASHSCOPE_API_KEY", "ds-key")
    monkeypatch.setenv("DASHSCOPE_BASE_URL", "https://dashscope.example/v1/")
    s = QwenSettings()
    assert s.resolved_api_key == "ds-key"
    assert s.resolved_base_url == "https://dashscope.example/v1"


def test_azure_legacy_deployment_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AZURE_OPENAI_DEPLOYMENT_ID", raising=False)
    monkeypatch.setenv("AZURE_DEPLOYMENT_ID", "tts-deploy")
    s = AzureOpenAISettings()
    assert s.deployment_id is None
    assert s.legacy_deployment_id == "tts-deploy"
    assert s.api_version == "2024-02-15-preview"


def test_replicate_and_app_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "REPLICATE_POLL_INTERVAL_SECONDS",
        "REPLICATE_POLL_TIMEOUT_SECONDS",
        "TTS_SDK_LOG_LEVEL",
        "TTS_SDK_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    r = ReplicateSettings()
    assert r.poll_interval_seconds == 0.8
    assert r.poll_timeout_seconds == 90.0
    app = AppSettings()
    assert app.log_level == "INFO"
    assert app.max_retries == 2
