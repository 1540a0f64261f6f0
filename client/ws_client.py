from __future__ import annotations
import asyncio
from contextlib import suppress
from typing import Optional, Union

import websockets

from shared.config import StreamConfig
from shared.errors import SampleDecodeError, StreamConnectError, StreamError, StreamReadError
from shared.log import get_logger
from shared.sample import Sample, SampleSchema, decode_sample

logger = get_logger(__name__)


class _Closed:
    """End-of-stream marker put on both queues when the reader exits."""

    def __repr__(self) -> str:
        return "CLOSED"


CLOSED = _Closed()

SampleItem = Union[Sample, _Closed]
ErrorItem = Union[StreamError, _Closed]


class SampleStream:
    """
    Reader side of a device sample stream.

    Owns the WebSocket connection. A background task dials the device, decodes
    every frame and hands samples to ``samples``. The first fatal error goes to
    ``errors``. When the task ends, each queue receives ``CLOSED``, the error
    (if any) always ahead of it.
    """

    def __init__(
        self,
        url: str,
        schema: SampleSchema = SampleSchema.CHANNEL,
        *,
        ping_interval: Optional[float] = 20.0,
        ping_timeout: Optional[float] = 20.0,
        open_timeout: Optional[float] = 10.0,
        close_timeout: Optional[float] = 1.0,
        queue_size: int = 0,
    ) -> None:
        self.url = url
        self.schema = schema
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout
        self.websocket: Optional[websockets.ClientConnection] = None
        self.samples: asyncio.Queue[SampleItem] = asyncio.Queue(maxsize=queue_size)
        self.errors: asyncio.Queue[ErrorItem] = asyncio.Queue()
        self.received = 0
        self.dropped = 0
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: StreamConfig) -> SampleStream:
        return cls(
            config.ws_url,
            config.schema,
            ping_interval=config.ping_interval,
            ping_timeout=config.ping_timeout,
            open_timeout=config.open_timeout,
            close_timeout=config.close_timeout,
            queue_size=config.queue_size,
        )

    @property
    def _log_ctx(self) -> dict:
        return {"url": self.url, "schema": self.schema.value}

    def start(self) -> asyncio.Task:
        """Spawn the reader task (once) and return it."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def connect(self) -> None:
        """Dial the device; any failure becomes StreamConnectError"""
        try:
            self.websocket = await websockets.connect(
                self.url,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
                open_timeout=self.open_timeout,
                close_timeout=self.close_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise StreamConnectError(f"connect failed: {e}", url=self.url) from e
        logger.info("Connected", extra=self._log_ctx)

    async def _run(self) -> None:
        try:
            await self.connect()
            await self.read_loop()
        except StreamError as e:
            logger.debug("Reader stopping on fatal error: %s", e, extra=self._log_ctx)
            await self.errors.put(e)
        except Exception as e:
            logger.exception("Unexpected reader failure", extra=self._log_ctx)
            err = StreamReadError(f"reader failed: {e}", url=self.url)
            err.__cause__ = e
            await self.errors.put(err)
        finally:
            if self.websocket is not None:
                await self.websocket.close()

        await self.errors.put(CLOSED)
        await self.samples.put(CLOSED)

    async def read_loop(self) -> None:
        assert self.websocket is not None
        try:
            async for raw in self.websocket:
                try:
                    sample = decode_sample(raw, self.schema)
                except SampleDecodeError as e:
                    self.dropped += 1
                    logger.warning("JSON decode error: %s", e, extra=self._log_ctx)
                    continue
                self.received += 1
                await self.samples.put(sample)
        except websockets.exceptions.ConnectionClosedError as e:
            raise StreamReadError(f"connection lost: {e}", url=self.url) from e
        except (OSError, websockets.exceptions.WebSocketException) as e:
            raise StreamReadError(f"read failed: {e}", url=self.url) from e

        # Normal close (1000/1001) from either side ends the iteration quietly
        logger.info("Peer closed stream after %d samples", self.received, extra=self._log_ctx)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Send a close frame. The reader task is left to notice on its own."""
        if self.websocket is not None:
            await self.websocket.close(code=code, reason=reason)

    async def stop(self) -> None:
        """Cancel the reader task and release the connection."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task

    async def __aenter__(self) -> SampleStream:
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
