from pathlib import Path

import pytest

from shared.config import StreamConfig, load_config
from shared.errors import ConfigError
from shared.sample import SampleSchema
from shared.utils import build_ws_url, channel_path


def test_defaults_point_at_the_device():
    cfg = StreamConfig()

    assert cfg.ws_url == "ws://192.168.1.66:81/"
    assert cfg.schema is SampleSchema.CHANNEL
    assert cfg.output_mode == "print"
    assert cfg.signals_enabled is False


def test_reading_schema_switches_output_and_signals():
    cfg = StreamConfig().merged({"schema": "reading"})

    assert cfg.schema is SampleSchema.READING
    assert cfg.output_mode == "log"
    assert cfg.signals_enabled is True

    cfg = cfg.merged({"output": "print", "handle_signals": False})
    assert cfg.output_mode == "print"
    assert cfg.signals_enabled is False


def test_none_overrides_are_ignored():
    cfg = StreamConfig().merged({"host": None, "port": 8080})
    assert cfg.host == "192.168.1.66"
    assert cfg.ws_url == "ws://192.168.1.66:8080/"


def test_url_wins_over_host_and_port():
    cfg = StreamConfig().merged({"url": "ws://esp32.local/ws/channel/0", "port": 9000})
    assert cfg.ws_url == "ws://esp32.local/ws/channel/0"


def test_load_yaml_config(tmp_path: Path):
    path = tmp_path / "stream.yaml"
    path.write_text(
        "sensorstream:\n"
        "  host: esp32.local\n"
        "  port: 80\n"
        "  path: /ws/channel/2\n"
        "  schema: reading\n"
        "  queue_size: 16\n"
        "  log_file: logs/stream.log\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.ws_url == "ws://esp32.local/ws/channel/2"
    assert cfg.schema is SampleSchema.READING
    assert cfg.queue_size == 16
    assert cfg.log_file == Path("logs/stream.log")


def test_load_config_from_env(tmp_path: Path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("port: 8081\n", encoding="utf-8")
    monkeypatch.setenv("SENSORSTREAM_CONFIG", str(path))

    assert load_config().port == 8081


def test_load_config_without_file_returns_defaults(monkeypatch):
    monkeypatch.delenv("SENSORSTREAM_CONFIG", raising=False)
    assert load_config() == StreamConfig()


@pytest.mark.parametrize(
    "body",
    [
        "bogus_key: 1\n",
        "port: 70000\n",
        "port: true\n",
        "host: 'not a host'\n",
        "schema: pressure\n",
        "output: csv\n",
        "queue_size: -1\n",
        "handle_signals: \"no\"\n",
        "strict_exit: 1\n",
        "ping_interval: 0\n",
        "log_level: LOUD\n",
        "url: http://device/\n",
        "- just\n- a list\n",
        "key: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, body):
    path = tmp_path / "bad.yaml"
    path.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_missing_config_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_build_ws_url():
    assert build_ws_url("192.168.1.66", 81) == "ws://192.168.1.66:81/"
    assert build_ws_url("esp32.local", 80, "ws/channel/1") == "ws://esp32.local/ws/channel/1"
    assert build_ws_url("localhost", None, "/x") == "ws://localhost/x"

    with pytest.raises(ValueError):
        build_ws_url("bad host", 81)
    with pytest.raises(ValueError):
        build_ws_url("localhost", 0)


def test_channel_path_limits():
    assert channel_path(0) == "/ws/channel/0"
    assert channel_path(3) == "/ws/channel/3"
    with pytest.raises(ValueError):
        channel_path(4)

