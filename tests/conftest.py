import json
import socket
import sys
import threading
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path

import pytest
import websockets
from websockets.sync.server import serve as sync_serve

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def frame(**fields) -> str:
    return json.dumps(fields, separators=(",", ":"))


def free_port() -> int:
    # Bind and release so nothing is listening on the returned port
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@asynccontextmanager
async def _device(handler):
    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}/"


def _sender(frames, close_code):
    async def handler(ws):
        for f in frames:
            await ws.send(f)
        await ws.close(code=close_code)
    return handler


@pytest.fixture
def device():
    """
    Factory for a fake sensor device on an ephemeral port.

    ``device(handler)`` runs a custom connection handler;
    ``device(frames=[...], close_code=1000)`` sends the frames, then closes.
    Both are async context managers yielding the ws:// URL.
    """
    def factory(handler=None, *, frames=(), close_code=1000):
        return _device(handler or _sender(list(frames), close_code))
    return factory


@contextmanager
def _threaded_device(frames, close_code):
    def handler(ws):
        for f in frames:
            ws.send(f)
        ws.close(code=close_code)

    with sync_serve(handler, "127.0.0.1", 0) as server:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        yield f"ws://127.0.0.1:{server.socket.getsockname()[1]}/"
    thread.join(timeout=5)


@pytest.fixture
def threaded_device():
    """Same as ``device`` but served from a thread, for synchronous CLI tests."""
    def factory(frames=(), close_code=1000):
        return _threaded_device(list(frames), close_code)
    return factory
