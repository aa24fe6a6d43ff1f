from tts_sdk.core.logging import MAX_VALUE_CHARS, _pretty_rich_renderer


def test_renderer_orders_known_keys_first() -> None:
    line = _pretty_rich_renderer(
        None,
        "info",
        {"event": "job_polled", "level": "info", "zeta": 1, "job_id": "p1", "component": "replicate"},
    )
    assert line.startswith("[bold cyan]⏳ job_polled[/bold cyan]")
    assert line.index("component=") < line.index("job_id=") < line.index("zeta=")


def test_renderer_escapes_and_truncates_values() -> None:
    line = _pretty_rich_renderer(
        None,
        "warning",
        {"event": "retrying", "level": "warning", "error": "[red]" + "x" * 500},
    )
    assert "[bold yellow]🔁 retrying[/bold yellow]" in line
    assert "\\[red]" in line
    assert len(line) < MAX_VALUE_CHARS + 100
