from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Dict, Optional, Type

import typer
from rich.console import Console
from rich.table import Table

from tts_sdk.config import AppSettings
from tts_sdk.core.execute import synthesize
from tts_sdk.core.logging import configure_logging, get_logger
from tts_sdk.core.registry import ProviderRegistry, create_provider_registry
from tts_sdk.errors import InvalidArgumentError, TTSError
from tts_sdk.integrations.tts import Provider
from tts_sdk.integrations.tts_azure_openai import AzureOpenAIVoice, create_azure_openai
from tts_sdk.integrations.tts_elevenlabs import ElevenLabsModel, ElevenLabsVoice, create_elevenlabs
from tts_sdk.integrations.tts_openai import OpenAIModel, OpenAIVoice, create_openai
from tts_sdk.integrations.tts_qwen import QwenModel, QwenVoice, create_qwen
from tts_sdk.integrations.tts_replicate import MiniMaxVoice, ReplicateModel, create_replicate

app = typer.Typer(no_args_is_help=True)

KNOWN_MODELS: Dict[str, Optional[Type[Enum]]] = {
    "openai": OpenAIModel,
    "azure-openai": None,
    "elevenlabs": ElevenLabsModel,
    "qwen": QwenModel,
    "replicate": ReplicateModel,
}

KNOWN_VOICES: Dict[str, Type[Enum]] = {
    "openai": OpenAIVoice,
    "azure-openai": AzureOpenAIVoice,
    "elevenlabs": ElevenLabsVoice,
    "qwen": QwenVoice,
    "replicate": MiniMaxVoice,
}


def default_registry(*, timeout_seconds: float = 60.0) -> ProviderRegistry:
    """
    All providers configured from the environment. Azure OpenAI is only added
    when an endpoint and deployment are configured.
    """
    log = get_logger(component="cli")
    providers: Dict[str, Provider] = {
        "openai": create_openai(timeout_seconds=timeout_seconds),
        "elevenlabs": create_elevenlabs(timeout_seconds=timeout_seconds),
        "qwen": create_qwen(timeout_seconds=timeout_seconds),
        "replicate": create_replicate(timeout_seconds=timeout_seconds),
    }
    try:
        providers["azure-openai"] = create_azure_openai(timeout_seconds=timeout_seconds)
    except InvalidArgumentError as e:
        log.debug("provider_skipped", provider="azure-openai", reason=str(e))
    return create_provider_registry(providers=providers)


@app.command()
def models() -> None:
    """List known model ids per provider."""
    for provider, known in KNOWN_MODELS.items():
        if known is None:
            typer.echo("%s:<deployment-id>" % provider)
            continue
        for member in known:
            typer.echo("%s:%s" % (provider, member.value))


@app.command()
def voices(provider: str = typer.Argument(..., help="Provider id, e.g. openai")) -> None:
    """List known voices for a provider."""
    known = KNOWN_VOICES.get(provider)
    if known is None:
        raise typer.BadParameter("Unknown provider '%s'. Use one of: %s" % (provider, ", ".join(KNOWN_VOICES)))
    for member in known:
        typer.echo(member.value)


@app.command()
def probe(
    model: str = typer.Argument(..., help="provider:model, e.g. openai:tts-1"),
    text: str = typer.Argument(..., help="Text to speak"),
    voice: str = typer.Option(None, "--voice", help="Voice (must be a known voice for the provider)"),
    output_format: str = typer.Option(None, "--format", help="Provider output format"),
    max_retries: int = typer.Option(None, "--max-retries", help="Retries on transient failures (0-5)"),
) -> None:
    """
    Synthesize once and report media type, size and latency. Audio is discarded.
    """
    settings = AppSettings()
    configure_logging(settings.log_level)

    registry = default_registry(timeout_seconds=settings.timeout_seconds)

    async def run_once() -> None:
        started = time.monotonic()
        result = await synthesize(
            model=registry.speech_model(model),
            text=text,
            voice=voice,
            output_format=output_format,
            max_retries=max_retries if max_retries is not None else settings.max_retries,
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)

        table = Table(title="tts-sdk probe")
        table.add_column("model")
        table.add_column("media type")
        table.add_column("bytes", justify="right")
        table.add_column("latency (ms)", justify="right")
        table.add_column("warnings", justify="right")
        table.add_row(model, result.media_type, str(len(result.audio)), str(elapsed_ms), str(len(result.warnings)))
        Console().print(table)

    try:
        asyncio.run(run_once())
    except TTSError as e:
        typer.echo("%s: %s" % (type(e).__name__, e.message), err=True)
        raise SystemExit(1)
