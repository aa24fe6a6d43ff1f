from __future__ import annotations

import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tts_sdk.errors import LoadApiKeyError


def _strip_quotes(s: str) -> str:
    s = (s or "").strip()
    if len(s) >= 2 and ((s[0] == s[-1]) and s[0] in ("'", '"')):
        s = s[1:-1].strip()
    return s


def _opt(v: object) -> Optional[str]:
    if v is None:
        return None
    s = _strip_quotes(str(v))
    return s or None


def without_trailing_slash(value: str) -> str:
    return value.rstrip("/")


_ENV_CONFIG = SettingsConfigDict(
    env_prefix="",
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class OpenAISettings(BaseSettings):
    model_config = _ENV_CONFIG

    api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    organization: Optional[str] = Field(default=None, alias="OPENAI_ORGANIZATION")
    project: Optional[str] = Field(default=None, alias="OPENAI_PROJECT")

    @field_validator("api_key", "organization", "project", mode="before")
    @classmethod
    def _norm_opt(cls, v: object) -> Optional[str]:
        return _opt(v)

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, v: object) -> str:
        return without_trailing_slash(_strip_quotes(str(v)))


class AzureOpenAISettings(BaseSettings):
    model_config = _ENV_CONFIG

    api_key: Optional[str] = Field(default=None, alias="AZURE_API_KEY")
    endpoint: Optional[str] = Field(default=None, alias="AZURE_ENDPOINT")
    resource_name: Optional[str] = Field(default=None, alias="AZURE_RESOURCE_NAME")
    api_version: str = Field(default="2024-02-15-preview", alias="AZURE_API_VERSION")
    deployment_id: Optional[str] = Field(default=None, alias="AZURE_OPENAI_DEPLOYMENT_ID")
    # Older name, still honored when AZURE_OPENAI_DEPLOYMENT_ID is unset.
    legacy_deployment_id: Optional[str] = Field(default=None, alias="AZURE_DEPLOYMENT_ID")

    @field_validator("api_key", "endpoint", "resource_name", "deployment_id", "legacy_deployment_id", mode="before")
    @classmethod
    def _norm_opt(cls, v: object) -> Optional[str]:
        return _opt(v)

    @field_validator("api_version", mode="before")
    @classmethod
    def _norm_str(cls, v: object) -> str:
        return _strip_quotes(str(v)) or "2024-02-15-preview"


class ElevenLabsSettings(BaseSettings):
    model_config = _ENV_CONFIG

    api_key: Optional[str] = Field(default=None, alias="ELEVENLABS_API_KEY")
    base_url: str = Field(default="https://api.elevenlabs.io", alias="ELEVENLABS_BASE_URL")

    @field_validator("api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, v: object) -> Optional[str]:
        return _opt(v)

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, v: object) -> str:
        return without_trailing_slash(_strip_quotes(str(v)))


class QwenSettings(BaseSettings):
    model_config = _ENV_CONFIG

    api_key: Optional[str] = Field(default=None, alias="ALIBABA_API_KEY")
    dashscope_api_key: Optional[str] = Field(default=None, alias="DASHSCOPE_API_KEY")
    base_url: Optional[str] = Field(default=None, alias="ALIBABA_BASE_URL")
    dashscope_base_url: Optional[str] = Field(default=None, alias="DASHSCOPE_BASE_URL")

    @field_validator("api_key", "dashscope_api_key", "base_url", "dashscope_base_url", mode="before")
    @classmethod
    def _norm_opt(cls, v: object) -> Optional[str]:
        return _opt(v)

    @property
    def resolved_api_key(self) -> Optional[str]:
        return self.api_key or self.dashscope_api_key

    @property
    def resolved_base_url(self) -> str:
        url = self.base_url or self.dashscope_base_url or "https://dashscope-intl.aliyuncs.com/compatible-mode/v1"
        return without_trailing_slash(url)


class ReplicateSettings(BaseSettings):
    model_config = _ENV_CONFIG

    api_token: Optional[str] = Field(default=None, alias="REPLICATE_API_TOKEN")
    base_url: str = Field(default="https://api.replicate.com/v1", alias="REPLICATE_BASE_URL")
    poll_interval_seconds: float = Field(default=0.8, alias="REPLICATE_POLL_INTERVAL_SECONDS")
    poll_timeout_seconds: float = Field(default=90.0, alias="REPLICATE_POLL_TIMEOUT_SECONDS")

    @field_validator("api_token", mode="before")
    @classmethod
    def _norm_opt(cls, v: object) -> Optional[str]:
        return _opt(v)

    @field_validator("base_url", mode="before")
    @classmethod
    def _normalize_base_url(cls, v: object) -> str:
        return without_trailing_slash(_strip_quotes(str(v)))


class AppSettings(BaseSettings):
    model_config = _ENV_CONFIG

    log_level: str = Field(default="INFO", alias="TTS_SDK_LOG_LEVEL")
    timeout_seconds: float = Field(default=60.0, alias="TTS_SDK_TIMEOUT_SECONDS")
    max_retries: int = Field(default=2, alias="TTS_SDK_MAX_RETRIES")

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_level(cls, v: object) -> str:
        return _strip_quotes(str(v)).upper() or "INFO"


def load_api_key(
    *,
    api_key: Optional[str],
    environment_variable_name: str,
    description: str,
    api_key_parameter_name: str = "api_key",
) -> str:
    """
    Explicit key first, then the environment. Raises LoadApiKeyError when neither is usable.
    """
    if api_key is not None:
        if not isinstance(api_key, str):
            raise LoadApiKeyError("%s API key must be a string." % description)
        if api_key.strip():
            return api_key

    env_value = _opt(os.environ.get(environment_variable_name))
    if env_value is None:
        raise LoadApiKeyError(
            "%s API key is missing. Pass '%s' or set %s."
            % (description, api_key_parameter_name, environment_variable_name)
        )
    return env_value
