"""Unit tests for the asynchronous log relay."""

import threading
from unittest.mock import MagicMock

import pytest

from svn_updater.updaters.logging import InMemoryLogSink
from svn_updater.updaters.relay import STDERR, LogRelay, RelayError


class BlockingSink(InMemoryLogSink):
    """Sink that holds every write until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def write_stdout(self, data):
        self.release.wait(5)
        super().write_stdout(data)


class FailingSink(InMemoryLogSink):
    def __init__(self, fail_after):
        super().__init__()
        self.writes = 0
        self.fail_after = fail_after

    def write_stdout(self, data):
        self.writes += 1
        if self.writes > self.fail_after:
            raise OSError("disk full")
        super().write_stdout(data)


class TestLogRelay:
    """Test LogRelay ordering and lifecycle."""

    def test_everything_written_reaches_sink_in_order(self):
        """Test every write before close is delivered in order."""
        sink = InMemoryLogSink()
        relay = LogRelay(sink)
        out = relay.open()

        for i in range(500):
            out.println(f"line {i}")
        out.error("boom")
        relay.close()
        relay.join(5)

        lines = sink.text.splitlines()
        assert lines[:500] == [f"line {i}" for i in range(500)]
        assert lines[500] == "ERROR: boom"
        assert sink.stderr == b"ERROR: boom\n"

    def test_thread_named_and_finished(self):
        """Test the drain thread is named and gone after join."""
        relay = LogRelay(InMemoryLogSink())
        relay.open()

        names = [t.name for t in threading.enumerate()]
        assert "svn log copier" in names

        relay.close()
        relay.join(5)
        assert relay._thread.is_alive() is False

    def test_writer_never_blocks_on_sink(self):
        """Test writes return while the sink is stalled."""
        sink = BlockingSink()
        relay = LogRelay(sink)
        out = relay.open()

        for i in range(100):
            out.println(f"line {i}")
        relay.close()
        assert sink.stdout == b""

        sink.release.set()
        relay.join(5)
        assert len(sink.text.splitlines()) == 100

    def test_join_timeout(self):
        """Test a stalled drain is reported after the timeout."""
        sink = BlockingSink()
        relay = LogRelay(sink)
        out = relay.open()
        out.println("stuck")
        relay.close()

        with pytest.raises(RelayError):
            relay.join(0.05)

        sink.release.set()
        relay.join(5)

    def test_close_is_idempotent(self):
        """Test closing twice is harmless."""
        relay = LogRelay(InMemoryLogSink())
        out = relay.open()
        relay.close()
        relay.close()
        out.close()
        relay.join(5)

        assert out.closed is True

    def test_write_after_close(self):
        """Test writing to a closed relay fails."""
        relay = LogRelay(InMemoryLogSink())
        out = relay.open()
        relay.close()

        with pytest.raises(ValueError):
            out.println("late")
        relay.join(5)

    def test_open_twice(self):
        """Test a relay is opened once."""
        relay = LogRelay(InMemoryLogSink())
        relay.open()

        with pytest.raises(RuntimeError):
            relay.open()
        relay.close()
        relay.join(5)

    def test_join_before_open(self):
        """Test join without a drain thread returns immediately."""
        LogRelay(InMemoryLogSink()).join(0)

    def test_sink_failure_surfaces_on_join(self):
        """Test a sink error is raised by join, after draining."""
        sink = FailingSink(fail_after=2)
        relay = LogRelay(sink)
        out = relay.open()
        for i in range(10):
            out.println(f"line {i}")
        relay.close()

        with pytest.raises(RelayError) as excinfo:
            relay.join(5)

        assert isinstance(excinfo.value.__cause__, OSError)
        assert sink.text == "line 0\nline 1\n"
        assert relay._thread.is_alive() is False

    def test_stream_routing(self):
        """Test raw writes go to the requested stream."""
        sink = InMemoryLogSink()
        relay = LogRelay(sink)
        out = relay.open()
        out.write(b"out\n")
        out.write("err\n", STDERR)
        out.write(b"")
        relay.close()
        relay.join(5)

        assert sink.stdout == b"out\n"
        assert sink.stderr == b"err\n"

    def test_interrupted_join(self, monkeypatch):
        """Test an interrupt while waiting for the drain becomes RelayError."""
        relay = LogRelay(InMemoryLogSink())
        out = relay.open()
        out.println("line")
        relay.close()
        thread = relay._thread
        interrupt = KeyboardInterrupt()
        monkeypatch.setattr(thread, "join", MagicMock(side_effect=interrupt))

        with pytest.raises(RelayError) as excinfo:
            relay.join(5)

        assert excinfo.value.__cause__ is interrupt
        assert str(excinfo.value) == "interrupted"
        monkeypatch.undo()
        relay.join(5)
