from __future__ import annotations
from typing import Callable, Iterable, Optional, Tuple

from rich.console import Console

from shared.errors import SampleDecodeError
from shared.log import get_logger, log_sample
from shared.sample import Sample, SampleSchema, decode_sample

logger = get_logger(__name__)

SampleSink = Callable[[Sample], None]


class PrintSink:
    """Writes one plain line per sample to stdout ("2, 1000, 3.500000")."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)

    def __call__(self, sample: Sample) -> None:
        self.console.print(sample.format_line(), markup=False, emoji=False)


class LogSink:
    """Logs each sample's repr through the sample logger (stderr)."""

    def __init__(self, schema: SampleSchema, sample_logger=None) -> None:
        self.schema = schema
        self.logger = sample_logger or logger

    def __call__(self, sample: Sample) -> None:
        log_sample(self.logger, "info", "sample", sample, schema=self.schema.value)


def make_sink(mode: str, schema: SampleSchema, console: Optional[Console] = None) -> SampleSink:
    if mode == "print":
        return PrintSink(console)
    if mode == "log":
        return LogSink(schema)
    raise ValueError(f"Unknown output mode: {mode}")


def replay_lines(lines: Iterable[str], schema: SampleSchema, sink: SampleSink) -> Tuple[int, int]:
    """
    Decode captured frames, one JSON object per line, into ``sink``.

    Blank lines are skipped. Returns (decoded, failed).
    """
    decoded = failed = 0
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            sample = decode_sample(line, schema)
        except SampleDecodeError as e:
            failed += 1
            logger.warning("line %d: JSON decode error: %s", lineno, e)
            continue
        decoded += 1
        sink(sample)
    return decoded, failed
