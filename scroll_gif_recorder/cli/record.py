import asyncio
import json
from pathlib import Path
from typing import Optional

import pydantic
import typer
from rich.table import Table

from scroll_gif_recorder.cli.common import verbose_callback
from scroll_gif_recorder.config import get_config
from scroll_gif_recorder.console import console
from scroll_gif_recorder.models import RecordingInput, RunResult
from scroll_gif_recorder.recorder import run_recording


def build_input(input_file: Optional[Path], overrides: dict) -> RecordingInput:
    """Merge an INPUT.json style file with options given on the command line.

    Command line options win. They are keyed by field name and stored under
    the camelCase alias so they replace the file's entry instead of sitting
    next to it.
    """
    data = {}
    if input_file is not None:
        data = json.loads(input_file.read_text())
    fields = RecordingInput.model_fields
    data.update(
        {fields[k].alias or k: v for k, v in overrides.items() if v is not None}
    )
    return RecordingInput.model_validate(data)


def print_result(result: RunResult) -> None:
    table = Table(title=result.url)
    table.add_column("field")
    table.add_column("value")
    table.add_row("status", result.status.value)
    table.add_row("attempts", str(result.attempts))
    table.add_row("frames", str(result.frame_count))
    if result.error:
        table.add_row("error", result.error, style="red")
    if result.record:
        for key, value in result.record.to_dataset_item().items():
            table.add_row(key, value)
    console.print(table)


def record(
    url: Optional[str] = typer.Argument(None, help="page to record"),
    input_file: Optional[Path] = typer.Option(
        None, "--input", "-i", exists=True, dir_okay=False, help="INPUT.json with recording options"
    ),
    viewport_width: Optional[int] = typer.Option(None),
    viewport_height: Optional[int] = typer.Option(None),
    frame_rate: Optional[int] = typer.Option(None),
    wait_to_load_page: Optional[int] = typer.Option(None, help="ms to wait after load"),
    recording_time_before_action: Optional[int] = typer.Option(None, help="ms"),
    scroll_down: Optional[bool] = typer.Option(None, "--scroll-down/--no-scroll-down"),
    scroll_percentage: Optional[int] = typer.Option(None, help="1-100"),
    cookie_window_selector: Optional[str] = typer.Option(None),
    click_selector: Optional[str] = typer.Option(None),
    recording_time_after_click: Optional[int] = typer.Option(None, help="ms"),
    slow_down_animations: Optional[bool] = typer.Option(
        None, "--slow-down-animations/--no-slow-down-animations"
    ),
    lossy_compression: Optional[bool] = typer.Option(None, "--lossy/--no-lossy"),
    lossless_compression: Optional[bool] = typer.Option(None, "--lossless/--no-lossless"),
    proxy_url: Optional[list[str]] = typer.Option(None, "--proxy-url"),
    verbose: bool = typer.Option(
        False,
        callback=verbose_callback,
        help="show the log messages",
    ),
):
    "record a page into a gif"
    overrides = {
        "url": url,
        "viewport_width": viewport_width,
        "viewport_height": viewport_height,
        "frame_rate": frame_rate,
        "wait_to_load_page": wait_to_load_page,
        "recording_time_before_action": recording_time_before_action,
        "scroll_down": scroll_down,
        "scroll_percentage": scroll_percentage,
        "cookie_window_selector": cookie_window_selector,
        "click_selector": click_selector,
        "recording_time_after_click": recording_time_after_click,
        "slow_down_animations": slow_down_animations,
        "lossy_compression": lossy_compression,
        "lossless_compression": lossless_compression,
        "proxy_configuration": {"proxyUrls": proxy_url} if proxy_url else None,
    }
    try:
        recording_input = build_input(input_file, overrides)
    except (pydantic.ValidationError, json.JSONDecodeError) as e:
        console.print(f"[red]Invalid input[/red]\n{e}")
        raise typer.Exit(2)

    result = asyncio.run(run_recording(recording_input, get_config()))
    print_result(result)
    if not result.succeeded:
        raise typer.Exit(1)
