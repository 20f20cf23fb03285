"""
Append-only report log.

Every line is ``[<UTC timestamp>] <message>``. The file is truncated when
opened and flushed after every write, so an interrupted run still leaves a
readable partial log.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, TextIO

from netdiagnose.errors import LogSinkError
from netdiagnose.models import ProbeResult


logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
RESULT_INDENT = " " * 4
BLOCK_INDENT = " " * 8

# Detail keys already shown in the status line
HIDDEN_DETAIL_KEYS = {"records"}


def format_timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def render_result(result: ProbeResult) -> list[str]:
    """Turn a result into log messages (without timestamps)."""
    inline = []
    blocks = []
    for key, value in result.detail.items():
        if key in HIDDEN_DETAIL_KEYS:
            continue
        if "\n" in value:
            blocks.append((key, value))
        else:
            inline.append(f"{key}={value}")

    line = f"{RESULT_INDENT}{result.label}: {result.status}"
    if inline:
        line += f" ({' '.join(inline)})"

    lines = [line]
    for key, value in blocks:
        lines.append(f"{RESULT_INDENT}{key}:")
        lines.extend(f"{BLOCK_INDENT}{raw}" for raw in value.rstrip("\n").splitlines())
    return lines


class LogSink:
    """Single-writer, line-oriented report log."""

    def __init__(self, handle: TextIO, path: Path, echo: Callable[[str], None] | None = None):
        self._handle = handle
        self.path = path
        self.echo = echo
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: str | Path, echo: Callable[[str], None] | None = None) -> "LogSink":
        """Truncate (or create) the log file and return a sink for it."""
        path = Path(path)
        try:
            if path.parent and not path.parent.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise LogSinkError(f"Cannot open log file {path}: {e.strerror or e}") from e
        logger.debug("Opened log sink %s", path)
        return cls(handle, path, echo)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def write(self, message: str) -> None:
        """Write a message; each of its lines gets its own timestamp."""
        self.write_lines(message.splitlines() or [""])

    def write_lines(self, messages: list[str]) -> None:
        ts = format_timestamp()
        lines = [f"[{ts}] {message}" for message in messages]
        payload = "\n".join(lines) + "\n"
        with self._lock:
            if self._handle.closed:
                raise LogSinkError(f"Log sink {self.path} is closed")
            self._handle.write(payload)
            self._handle.flush()
            if self.echo:
                for line in lines:
                    self.echo(line)

    def banner(self, title: str) -> None:
        self.write(f"--- {title} ---")

    def record(self, result: ProbeResult) -> None:
        """Write one probe result as a single atomic write."""
        self.write_lines(render_result(result))

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
