"""Asynchronous relay between checkout progress output and the build log.

The checkout writes into an unbounded queue and never waits on the sink;
a single drain thread copies items to the sink in order. Closing the writer
enqueues an end-of-stream marker, so joining the drain thread guarantees
that every byte written before close reached the sink.
"""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Optional, Tuple, Union

from .base import BuildLogSink
from .logging import ERROR_PREFIX

logger = logging.getLogger(__name__)

STDOUT = "stdout"
STDERR = "stderr"

_EOF = None


class RelayError(IOError):
    """Raised when the relay cannot guarantee a complete log transfer."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class RelayWriter:
    """Producer side of the relay. Used from a single thread."""

    def __init__(self, queue: "Queue[Optional[Tuple[str, bytes]]]") -> None:
        self._queue = queue
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: Union[bytes, str], stream: str = STDOUT) -> None:
        if self._closed:
            raise ValueError("write to closed log relay")
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data:
            self._queue.put((stream, data))

    def println(self, text: str) -> None:
        self.write(f"{text}\n")

    def error(self, text: str) -> None:
        self.write(f"{ERROR_PREFIX}{text}\n", STDERR)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put(_EOF)


class LogRelay:
    """Drain thread plus writer, with an explicit close/join lifecycle.

    Example:
        relay = LogRelay(sink)
        out = relay.open()
        try:
            out.println("Checking out ...")
        finally:
            relay.close()
            relay.join()
    """

    def __init__(self, sink: BuildLogSink, name: str = "svn log copier") -> None:
        self.sink = sink
        self.name = name
        self._queue: "Queue[Optional[Tuple[str, bytes]]]" = Queue()
        self._writer: Optional[RelayWriter] = None
        self._thread: Optional[threading.Thread] = None
        self._sink_error: Optional[BaseException] = None

    @property
    def writer(self) -> Optional[RelayWriter]:
        return self._writer

    def open(self) -> RelayWriter:
        """Start the drain thread and return the producer side."""
        if self._thread is not None:
            raise RuntimeError("log relay already opened")
        self._writer = RelayWriter(self._queue)
        self._thread = threading.Thread(target=self._drain, name=self.name, daemon=True)
        self._thread.start()
        return self._writer

    def close(self) -> None:
        """Signal end-of-stream. Idempotent."""
        if self._writer is not None:
            self._writer.close()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait until every item written before close reached the sink.

        Raises:
            RelayError: If draining timed out, was interrupted, or the sink failed
        """
        if self._thread is None:
            return
        try:
            self._thread.join(timeout)
        except KeyboardInterrupt as exc:
            raise RelayError("interrupted", cause=exc)
        if self._thread.is_alive():
            raise RelayError(f"log relay did not drain within {timeout} seconds")
        if self._sink_error is not None:
            raise RelayError(f"failed to write build log: {self._sink_error}", cause=self._sink_error)

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            if item is _EOF:
                break
            if self._sink_error is not None:
                # keep consuming so the producer side never stalls
                continue
            stream, data = item
            try:
                if stream == STDERR:
                    self.sink.write_stderr(data)
                else:
                    self.sink.write_stdout(data)
            except Exception as exc:
                logger.error("Log relay %s failed writing to sink: %s", self.name, exc)
                self._sink_error = exc
        logger.debug("Log relay %s drained", self.name)
