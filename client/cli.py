#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Optional

import click
import typer
from rich.console import Console
from rich.markup import escape

from shared.config import OUTPUT_MODES, StreamConfig, load_config
from shared.errors import ConfigError
from shared.log import configure_root_logging, get_logger
from shared.sample import SampleSchema
from shared.utils import MAX_CHANNELS, channel_path
from .dispatcher import EXIT_CONFIG_ERROR, EXIT_STREAM_ERROR, run_stream
from .sinks import make_sink, replay_lines

app = typer.Typer(help="Sensor device WebSocket stream client", no_args_is_help=True)
console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True)
logger = get_logger(__name__)

_LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False)


def _resolve_config(config_path: Optional[Path], **overrides) -> StreamConfig:
    channel = overrides.pop("channel", None)
    if channel is not None and overrides.get("path") is None:
        overrides["path"] = channel_path(channel)
    try:
        return load_config(config_path).merged(overrides)
    except ConfigError as e:
        err_console.print(f"[red]Config error[/]: {escape(str(e))}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)


@app.command()
def stream(
    host: Optional[str] = typer.Option(None, help="Device host (default 192.168.1.66)"),
    port: Optional[int] = typer.Option(None, click_type=click.IntRange(1, 65535), help="Device WebSocket port (default 81)"),
    path: Optional[str] = typer.Option(None, help="WebSocket path on the device (default /)"),
    channel: Optional[int] = typer.Option(None, click_type=click.IntRange(0, MAX_CHANNELS - 1), help="ADC channel; sets path to /ws/channel/<n>"),
    url: Optional[str] = typer.Option(None, help="Full ws:// URL; overrides host, port and path"),
    schema: Optional[SampleSchema] = typer.Option(None, case_sensitive=False, help="Frame schema (default channel)"),
    output: Optional[str] = typer.Option(None, click_type=click.Choice(OUTPUT_MODES), help="print lines to stdout or log records to stderr"),
    signals: Optional[bool] = typer.Option(None, "--signals/--no-signals", help="Close the stream cleanly on SIGINT/SIGTERM"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file ($SENSORSTREAM_CONFIG)"),
    log_level: Optional[str] = typer.Option(None, click_type=_LOG_LEVELS, help="Log level"),
    log_file: Optional[Path] = typer.Option(None, help="Also write logs to this file"),
    queue_size: Optional[int] = typer.Option(None, click_type=click.IntRange(0), help="Sample hand-off queue size, 0 = unbounded"),
    strict_exit: Optional[bool] = typer.Option(None, "--strict-exit/--no-strict-exit", help="Exit 130 instead of 0 when interrupted"),
):
    """Connect to a device and print samples until the stream ends."""
    cfg = _resolve_config(
        config,
        host=host,
        port=port,
        path=path,
        channel=channel,
        url=url,
        schema=schema,
        output=output,
        handle_signals=signals,
        log_level=log_level,
        log_file=log_file,
        queue_size=queue_size,
        strict_exit=strict_exit,
    )
    configure_root_logging(cfg.log_level, cfg.log_file)

    exit_code = asyncio.run(run_stream(cfg, sink=make_sink(cfg.output_mode, cfg.schema, console)))
    raise typer.Exit(code=exit_code)


@app.command()
def decode(
    source: typer.FileText = typer.Argument("-", help="File of captured frames, one JSON object per line ('-' for stdin)"),
    schema: SampleSchema = typer.Option(SampleSchema.CHANNEL, case_sensitive=False, help="Frame schema"),
    output: str = typer.Option("print", click_type=click.Choice(OUTPUT_MODES), help="print lines or log records"),
    fail_on_error: bool = typer.Option(False, "--fail-on-error", help="Exit 1 if any line fails to decode"),
):
    """Decode captured frames offline with the same rules as the live stream."""
    decoded, failed = replay_lines(source, schema, make_sink(output, schema, console))
    logger.info("Decoded %d frames, %d failed", decoded, failed)
    if failed and fail_on_error:
        raise typer.Exit(code=EXIT_STREAM_ERROR)


@app.command()
def url(
    host: Optional[str] = typer.Option(None, help="Device host"),
    port: Optional[int] = typer.Option(None, click_type=click.IntRange(1, 65535), help="Device WebSocket port"),
    path: Optional[str] = typer.Option(None, help="WebSocket path"),
    channel: Optional[int] = typer.Option(None, click_type=click.IntRange(0, MAX_CHANNELS - 1), help="ADC channel"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
):
    """Print the WebSocket URL a stream command would dial."""
    cfg = _resolve_config(config, host=host, port=port, path=path, channel=channel)
    console.print(cfg.ws_url, markup=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
