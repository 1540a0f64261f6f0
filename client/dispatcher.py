from __future__ import annotations
import asyncio
import signal
from typing import Callable, Iterable, Optional

from shared.config import StreamConfig
from shared.errors import StreamError
from shared.log import get_logger
from .sinks import SampleSink, make_sink
from .ws_client import CLOSED, SampleStream

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STREAM_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


class SampleDispatcher:
    """
    Consumer side of a SampleStream.

    Waits on the next sample, the next error and (optionally) an interrupt
    event, whichever comes first, and decides how the process ends:

    - sample: handed to the sink, in arrival order
    - error: samples already queued are flushed, then exit code 1
    - stream closed without error: exit code 0
    - interrupt: close frame sent, nothing further is read
    """

    def __init__(
        self,
        stream: SampleStream,
        sink: SampleSink,
        interrupt: Optional[asyncio.Event] = None,
        strict_exit: bool = False,
    ) -> None:
        self.stream = stream
        self.sink = sink
        self.interrupt = interrupt
        self.strict_exit = strict_exit
        self.dispatched = 0
        self.close_task: Optional[asyncio.Task] = None

    def _emit(self, sample) -> None:
        self.dispatched += 1
        self.sink(sample)

    def _flush_queued(self) -> None:
        while True:
            try:
                item = self.stream.samples.get_nowait()
            except asyncio.QueueEmpty:
                return
            if item is CLOSED:
                return
            self._emit(item)

    async def run(self) -> int:
        samples_get: Optional[asyncio.Future] = None
        errors_get: Optional[asyncio.Future] = None
        interrupt_wait: Optional[asyncio.Future] = None
        errors_closed = False

        try:
            while True:
                if samples_get is None:
                    samples_get = asyncio.ensure_future(self.stream.samples.get())
                if errors_get is None and not errors_closed:
                    errors_get = asyncio.ensure_future(self.stream.errors.get())
                if interrupt_wait is None and self.interrupt is not None:
                    interrupt_wait = asyncio.ensure_future(self.interrupt.wait())

                waiters = {w for w in (samples_get, errors_get, interrupt_wait) if w is not None}
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if interrupt_wait in done:
                    return await self._on_interrupt()

                if samples_get in done:
                    item = samples_get.result()
                    samples_get = None
                    if item is not CLOSED:
                        self._emit(item)
                        continue
                    # The reader queues its error ahead of CLOSED
                    if errors_get is not None and not errors_get.done():
                        errors_get.cancel()
                        errors_get = None
                    err = errors_get.result() if errors_get is not None else None
                    if err is None and not self.stream.errors.empty():
                        err = self.stream.errors.get_nowait()
                    if isinstance(err, StreamError):
                        return self._on_error(err)
                    return self._on_closed()

                if errors_get in done:
                    err = errors_get.result()
                    errors_get = None
                    if err is CLOSED:
                        errors_closed = True
                        continue
                    samples_get.cancel()
                    samples_get = None
                    self._flush_queued()
                    return self._on_error(err)
        finally:
            for waiter in (samples_get, errors_get, interrupt_wait):
                if waiter is not None and not waiter.done():
                    waiter.cancel()

    async def _on_interrupt(self) -> int:
        logger.info("Interrupted, closing stream", extra={"url": self.stream.url})
        # the close frame goes out, the peer's acknowledgement is not awaited
        self.close_task = asyncio.create_task(self.stream.close(code=1000))
        await asyncio.sleep(0)
        return EXIT_INTERRUPTED if self.strict_exit else EXIT_OK

    def _on_error(self, err: StreamError) -> int:
        logger.critical("stream error: %s", err)
        return EXIT_STREAM_ERROR

    def _on_closed(self) -> int:
        logger.info("stream closed after %d samples", self.dispatched, extra={"url": self.stream.url})
        return EXIT_OK


def install_interrupt_handler(
    interrupt: asyncio.Event,
    signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
) -> Callable[[], None]:
    """
    Set ``interrupt`` when one of ``signals`` arrives.

    Returns a callable that removes the handlers again.
    """
    loop = asyncio.get_running_loop()
    installed = []

    def _on_signal(signum: signal.Signals) -> None:
        logger.debug("Received %s", signal.Signals(signum).name)
        interrupt.set()

    for sig in signals:
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError) as e:
            # Windows event loops have no add_signal_handler
            logger.warning("Cannot watch %s: %s", signal.Signals(sig).name, e)
            continue
        installed.append(sig)

    def remove() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return remove


async def run_stream(
    config: StreamConfig,
    sink: Optional[SampleSink] = None,
    interrupt: Optional[asyncio.Event] = None,
) -> int:
    """Connect, dispatch until the stream ends, and return the process exit code."""
    stream = SampleStream.from_config(config)
    if sink is None:
        sink = make_sink(config.output_mode, config.schema)

    remove_handlers = None
    if interrupt is None and config.signals_enabled:
        interrupt = asyncio.Event()
        remove_handlers = install_interrupt_handler(interrupt)

    dispatcher = SampleDispatcher(stream, sink, interrupt, strict_exit=config.strict_exit)
    logger.info("Streaming %s samples", config.schema.value, extra={"url": stream.url})
    stream.start()
    try:
        return await dispatcher.run()
    finally:
        if remove_handlers is not None:
            remove_handlers()
        await stream.stop()
