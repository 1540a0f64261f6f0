"""Stream client configuration: defaults, YAML config file, and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from shared.errors import ConfigError
from shared.sample import SampleSchema
from shared.utils import build_ws_url, is_hostname, is_valid_port


DEFAULT_HOST = "192.168.1.66"
DEFAULT_PORT = 81
DEFAULT_PATH = "/"

CONFIG_ENV_VAR = "SENSORSTREAM_CONFIG"

OUTPUT_MODES = ("print", "log")


@dataclass(frozen=True)
class StreamConfig:
    host: str = DEFAULT_HOST
    port: Optional[int] = DEFAULT_PORT
    path: str = DEFAULT_PATH
    # Full ws:// URL; when set it wins over host/port/path
    url: Optional[str] = None
    schema: SampleSchema = SampleSchema.CHANNEL
    # None means "whatever the schema defaults to"
    output: Optional[str] = None
    handle_signals: Optional[bool] = None
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0
    open_timeout: Optional[float] = 10.0
    # Upper bound on waiting for the peer to acknowledge our close frame
    close_timeout: Optional[float] = 1.0
    # 0 means unbounded hand-off between reader and dispatcher
    queue_size: int = 0
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    strict_exit: bool = False

    @property
    def ws_url(self) -> str:
        if self.url:
            return self.url
        return build_ws_url(self.host, self.port, self.path)

    @property
    def output_mode(self) -> str:
        return self.output or self.schema.default_output

    @property
    def signals_enabled(self) -> bool:
        if self.handle_signals is None:
            return self.schema.default_handle_signals
        return self.handle_signals

    def merged(self, overrides: Mapping[str, Any]) -> StreamConfig:
        """Return a copy with every non-None override applied, then validated."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        return validate(replace(self, **_coerce(updates)))


_FIELD_NAMES = {f.name for f in fields(StreamConfig)}


def _coerce(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(data) - _FIELD_NAMES
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    result = dict(data)
    if "schema" in result and not isinstance(result["schema"], SampleSchema):
        try:
            result["schema"] = SampleSchema.from_string(str(result["schema"]))
        except ValueError as e:
            raise ConfigError(str(e)) from e
    if "log_file" in result and not isinstance(result["log_file"], Path):
        result["log_file"] = Path(str(result["log_file"])).expanduser()
    return result


def validate(config: StreamConfig) -> StreamConfig:
    """Check values a YAML file or a caller could have gotten wrong."""
    if config.url is not None:
        if not isinstance(config.url, str) or not config.url.startswith(("ws://", "wss://")):
            raise ConfigError(f"url must start with ws:// or wss://: {config.url!r}")
    else:
        if not isinstance(config.host, str) or not is_hostname(config.host):
            raise ConfigError(f"Invalid host: {config.host!r}")
        if config.port is not None and not is_valid_port(config.port):
            raise ConfigError(f"Invalid port: {config.port!r}")
        if not isinstance(config.path, str):
            raise ConfigError(f"Invalid path: {config.path!r}")

    if config.output is not None and config.output not in OUTPUT_MODES:
        raise ConfigError(f"output must be one of {OUTPUT_MODES}: {config.output!r}")
    if not isinstance(config.queue_size, int) or isinstance(config.queue_size, bool) or config.queue_size < 0:
        raise ConfigError(f"queue_size must be a non-negative integer: {config.queue_size!r}")
    if config.handle_signals is not None and not isinstance(config.handle_signals, bool):
        raise ConfigError(f"handle_signals must be true or false: {config.handle_signals!r}")
    if not isinstance(config.strict_exit, bool):
        raise ConfigError(f"strict_exit must be true or false: {config.strict_exit!r}")
    for name in ("ping_interval", "ping_timeout", "open_timeout", "close_timeout"):
        value = getattr(config, name)
        if value is not None and (not isinstance(value, (int, float)) or value <= 0):
            raise ConfigError(f"{name} must be a positive number: {value!r}")
    if str(config.log_level).upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigError(f"Invalid log_level: {config.log_level!r}")
    return config


def default_config_path() -> Optional[Path]:
    value = os.getenv(CONFIG_ENV_VAR)
    return Path(value).expanduser() if value else None


def load_config(path: Optional[Path] = None) -> StreamConfig:
    """
    Load a StreamConfig from YAML, falling back to defaults.

    The file holds a mapping of StreamConfig fields, either at the top level or
    under a ``sensorstream:`` key. With no path, $SENSORSTREAM_CONFIG is used if set.
    """
    path = path or default_config_path()
    if path is None:
        return StreamConfig()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error reading {path}: {e}") from e

    if isinstance(raw, dict) and isinstance(raw.get("sensorstream"), dict):
        raw = raw["sensorstream"]
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    return StreamConfig().merged(raw)
