"""Build log sinks and the listener used to write human-readable build log lines.

This module provides:
- `FileBuildLogSink`, which mirrors the build log to a task logger and
  persists it to a log file
- `InMemoryLogSink`, a bytes-accumulating sink for tests and bootstrap wiring
- `BuildListener`, which formats status and error lines onto a sink
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Optional

from .base import BuildLogSink

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR: "


class FileBuildLogSink:
    """Append the build log to a file and echo its lines to a task logger.

    The file is opened on the first non-empty write. If it cannot be opened
    or written, a single warning is logged and the sink keeps echoing to the
    task logger only.
    """

    def __init__(self, task_logger: logging.Logger, log_file_path: Path) -> None:
        self.task_logger = task_logger
        self.log_file_path = Path(log_file_path)
        self._file: Optional[BinaryIO] = None
        self._file_disabled = False

    def write_stdout(self, data: bytes) -> None:
        self._write(data, logging.INFO)

    def write_stderr(self, data: bytes) -> None:
        self._write(data, logging.ERROR)

    def _write(self, data: bytes, level: int) -> None:
        if not data:
            return
        for line in data.decode("utf-8", errors="replace").splitlines():
            if line.strip():
                self.task_logger.log(level, line)

        stream = self._stream()
        if stream is None:
            return
        try:
            stream.write(data)
            stream.flush()
        except OSError as exc:
            logger.warning("Failed to write log file %s: %s", self.log_file_path, exc)
            self._disable_file()

    def _stream(self) -> Optional[BinaryIO]:
        if self._file is None and not self._file_disabled:
            try:
                self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
                self._file = open(self.log_file_path, "ab")
            except OSError as exc:
                logger.warning("Failed to open log file %s: %s", self.log_file_path, exc)
                self._file_disabled = True
        return self._file

    def _disable_file(self) -> None:
        self._file_disabled = True
        self.close()

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None

    def __enter__(self) -> "FileBuildLogSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class InMemoryLogSink:
    """Simple bytes-accumulating sink useful for tests and bootstrap wiring."""

    def __init__(self) -> None:
        self._stdout: bytearray = bytearray()
        self._stderr: bytearray = bytearray()
        self._combined: bytearray = bytearray()

    def write_stdout(self, data: bytes) -> None:
        self._stdout.extend(data)
        self._combined.extend(data)

    def write_stderr(self, data: bytes) -> None:
        self._stderr.extend(data)
        self._combined.extend(data)

    @property
    def stdout(self) -> bytes:
        return bytes(self._stdout)

    @property
    def stderr(self) -> bytes:
        return bytes(self._stderr)

    @property
    def text(self) -> str:
        """Everything written, in order, decoded as UTF-8."""
        return self._combined.decode("utf-8", errors="replace")


class BuildListener:
    """Writes build log lines directly to a sink."""

    def __init__(self, sink: BuildLogSink) -> None:
        self.sink = sink

    def println(self, text: str) -> None:
        self.sink.write_stdout(f"{text}\n".encode("utf-8"))

    def error(self, text: str) -> None:
        self.sink.write_stderr(f"{ERROR_PREFIX}{text}\n".encode("utf-8"))
