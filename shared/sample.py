from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Type, Union
import json

from shared.errors import SampleDecodeError
from shared.utils import is_uint32, is_json_int, is_json_number, to_float32


class SampleSchema(str, Enum):
    """Wire schemas a sensor device may stream."""

    CHANNEL = "channel"    # {"channel": int, "timestamp": uint32, "value": float32}
    READING = "reading"    # {"timestamp": uint32, "value": uint32}

    @classmethod
    def from_string(cls, value: str) -> SampleSchema:
        """Convert string to SampleSchema, raise ValueError if unknown."""
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown sample schema: {value}")

    @property
    def sample_class(self) -> Type[Sample]:
        return _SCHEMA_CLASSES[self]

    @property
    def default_output(self) -> str:
        # channel streams print CSV lines, reading streams are logged
        return "print" if self is SampleSchema.CHANNEL else "log"

    @property
    def default_handle_signals(self) -> bool:
        return self is SampleSchema.READING


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not JSON
    raise SampleDecodeError(f"Invalid JSON constant: {name}")


def _load_object(raw: Union[str, bytes]) -> Dict[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SampleDecodeError(f"Invalid UTF-8: {e}")
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise SampleDecodeError(f"Invalid JSON: {e}")
    if not isinstance(data, dict):
        raise SampleDecodeError(f"Expected JSON object, got {type(data).__name__}")
    return data


def _require(data: Dict[str, Any], fields: set) -> None:
    missing = fields - set(data.keys())
    if missing:
        raise SampleDecodeError(f"Missing required fields: {sorted(missing)}")


def _uint32_field(data: Dict[str, Any], name: str) -> int:
    value = data[name]
    if not is_json_int(value):
        raise SampleDecodeError(f"'{name}' must be an integer")
    if not is_uint32(value):
        raise SampleDecodeError(f"'{name}' out of uint32 range: {value}")
    return value


@dataclass(frozen=True)
class ChannelSample:
    """
    One reading from a multi-channel device:
    {
    "channel":   "INT (>= 0)",
    "timestamp": "UINT32 (device ms since boot, wraps)",
    "value":     "FLOAT32"
    }
    """
    channel: int
    timestamp: int
    value: float

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> ChannelSample:
        return cls.from_dict(_load_object(raw))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ChannelSample:
        _require(data, {"channel", "timestamp", "value"})

        channel = data["channel"]
        if not is_json_int(channel):
            raise SampleDecodeError("'channel' must be an integer")
        if channel < 0:
            raise SampleDecodeError(f"'channel' must be non-negative: {channel}")

        value = data["value"]
        if not is_json_number(value):
            raise SampleDecodeError("'value' must be a number")
        try:
            value = to_float32(value)
        except OverflowError:
            raise SampleDecodeError(f"'value' out of float32 range: {value}")

        return cls(channel=channel, timestamp=_uint32_field(data, "timestamp"), value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {"channel": self.channel, "timestamp": self.timestamp, "value": self.value}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), sort_keys=True)

    def format_line(self) -> str:
        return f"{self.channel}, {self.timestamp}, {self.value:f}"


@dataclass(frozen=True)
class ReadingSample:
    """Single-channel ADC reading: {"timestamp": UINT32, "value": UINT32}"""
    timestamp: int
    value: int

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> ReadingSample:
        return cls.from_dict(_load_object(raw))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ReadingSample:
        _require(data, {"timestamp", "value"})
        return cls(timestamp=_uint32_field(data, "timestamp"), value=_uint32_field(data, "value"))

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "value": self.value}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), sort_keys=True)

    def format_line(self) -> str:
        return f"{self.timestamp}, {self.value}"


Sample = Union[ChannelSample, ReadingSample]

_SCHEMA_CLASSES: Dict[SampleSchema, Type[Sample]] = {
    SampleSchema.CHANNEL: ChannelSample,
    SampleSchema.READING: ReadingSample,
}


def decode_sample(raw: Union[str, bytes], schema: SampleSchema) -> Sample:
    """Decode one frame with the given schema, raising SampleDecodeError on any mismatch"""
    return schema.sample_class.from_json(raw)
