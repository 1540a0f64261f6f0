from __future__ import annotations
import re
import struct
from typing import Any, Optional

# ========================================
#           SAMPLE FIELD HELPERS
# ========================================
"""
Helpers the sample decoder calls to decide whether a JSON field
holds a value the device could actually have sent.
"""

UINT32_MAX = 0xFFFFFFFF

# Number of ADC channels exposed by the firmware (/ws/channel/0..3)
MAX_CHANNELS = 4


def is_json_int(v: Any) -> bool:
    """JSON integers decode to int; bool is an int subclass but never a valid field."""
    return isinstance(v, int) and not isinstance(v, bool)


def is_json_number(v: Any) -> bool:
    return is_json_int(v) or isinstance(v, float)


def is_uint32(v: Any) -> bool:
    return is_json_int(v) and 0 <= v <= UINT32_MAX


def to_float32(v: float) -> float:
    """
    Round a Python float to the nearest single-precision value.

    Raises OverflowError when the value does not fit in a float32.
    """
    return struct.unpack('<f', struct.pack('<f', float(v)))[0]


# ========================================
#           ADDRESS HELPERS
# ========================================

_HOSTNAME_RE = re.compile(r'^[A-Za-z0-9._-]+$')


def is_valid_port(port: Any) -> bool:
    return is_json_int(port) and 0 < port <= 65535


def is_hostname(s: str) -> bool:
    """
    Accepts plain hostnames and dotted IPv4 addresses ('esp32.local', '192.168.1.66').
    """
    return bool(s) and bool(_HOSTNAME_RE.fullmatch(s))


def channel_path(channel: int) -> str:
    """Return the device WebSocket path for an ADC channel."""
    if not 0 <= channel < MAX_CHANNELS:
        raise ValueError(f"channel must be between 0 and {MAX_CHANNELS - 1}: {channel}")
    return f"/ws/channel/{channel}"


def build_ws_url(host: str, port: Optional[int] = None, path: str = "/") -> str:
    """
    Build 'ws://host[:port]path'.

    The port is omitted when it is None or the WebSocket default (80).
    """
    if not is_hostname(host):
        raise ValueError(f"Invalid host: {host!r}")
    if port is not None and not is_valid_port(port):
        raise ValueError(f"Invalid port: {port!r}")
    if not path.startswith("/"):
        path = "/" + path
    netloc = host if port in (None, 80) else f"{host}:{port}"
    return f"ws://{netloc}{path}"
