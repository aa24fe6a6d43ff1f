from __future__ import annotations

import logging
from typing import Any, Dict, List

import structlog
from rich.logging import RichHandler
from rich.markup import escape

MAX_VALUE_CHARS = 160

_EVENT_ICONS = {
    "retrying": "🔁",
    "job_created": "⏳",
    "job_polled": "⏳",
    "job_finished": "🏁",
    "stream_fallback": "↩️",
    "synthesis_failed": "❌",
}

# Rendered first, in this order; everything else follows sorted.
_LEADING_KEYS = ("component", "provider", "model_id", "job_id", "status", "attempt", "delay_ms")


def configure_logging(level: str, *, quiet_http: bool = True) -> None:
    """
    Rich console logs for the CLI and for apps embedding the SDK.

    The library only emits structlog events; nothing here runs on import.
    """
    level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                rich_tracebacks=True,
                markup=True,
                show_time=True,
                show_level=True,
                show_path=False,
            )
        ],
        force=True,
    )

    if quiet_http:
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _pretty_rich_renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        cache_logger_on_first_use=True,
    )


def get_logger(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger().bind(**kwargs)


def _pretty_rich_renderer(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> str:
    event = str(event_dict.pop("event", method_name))
    level = str(event_dict.pop("level", "")).lower()
    title = _style_for(level, "%s %s" % (_icon_for(event, level), event))

    parts: List[str] = []
    for key in _LEADING_KEYS:
        if key in event_dict:
            parts.append(_pair(key, event_dict.pop(key)))
    for key in sorted(event_dict):
        parts.append(_pair(key, event_dict[key]))

    if parts:
        return "%s  %s" % (title, " ".join(parts))
    return title


def _pair(key: str, value: Any) -> str:
    # Vendor error bodies may contain [brackets]; they must not be read as rich markup.
    text = repr(value)
    if len(text) > MAX_VALUE_CHARS:
        text = text[: MAX_VALUE_CHARS - 1] + "…"
    return "%s=%s" % (key, escape(text))


def _style_for(level: str, text: str) -> str:
    if level in ("error", "critical"):
        return "[bold red]%s[/bold red]" % text
    if level == "warning":
        return "[bold yellow]%s[/bold yellow]" % text
    return "[bold cyan]%s[/bold cyan]" % text


def _icon_for(event: str, level: str) -> str:
    icon = _EVENT_ICONS.get(event)
    if icon is not None:
        return icon
    if level in ("error", "critical"):
        return "❌"
    if level == "warning":
        return "⚠️"
    return "✅"
