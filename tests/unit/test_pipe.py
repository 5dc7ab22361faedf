# tests/unit/test_pipe.py

from __future__ import annotations
import sys
import threading
import time
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.core.context import Context
from chatbridge.core.errors import StreamCancelledError
from chatbridge.streaming.pipe import DEFAULT_CAPACITY, READ_SIZE, pipe


def _drain(reader):
    chunks = []
    while True:
        chunk = reader.read()
        if not chunk:
            return chunks
        chunks.append(chunk)


def test_bytes_arrive_in_order_then_eof():
    reader, writer = pipe()
    payload = bytes(i % 251 for i in range(10000))

    def produce():
        for i in range(0, len(payload), 333):
            writer.write(payload[i:i + 333])
        writer.close()

    t = threading.Thread(target=produce)
    t.start()
    chunks = _drain(reader)
    t.join(timeout=5)

    assert b"".join(chunks) == payload
    assert all(0 < len(c) <= READ_SIZE for c in chunks)
    # end-of-stream is sticky
    assert reader.read() == b""
    assert reader.read() == b""


def test_error_reported_after_buffered_bytes():
    reader, writer = pipe()
    writer.write(b"x" * 100)
    writer.close_with_error(RuntimeError("boom"))

    assert reader.read() == b"x" * 100
    with pytest.raises(RuntimeError, match="boom"):
        reader.read()
    # no resurrection
    with pytest.raises(RuntimeError, match="boom"):
        reader.read()


def test_first_close_wins():
    reader, writer = pipe()
    writer.close()
    writer.close_with_error(RuntimeError("late"))
    assert reader.read() == b""


def test_write_blocks_when_full_until_read():
    reader, writer = pipe()
    finished = threading.Event()

    def produce():
        writer.write(b"a" * (DEFAULT_CAPACITY + 1000))
        finished.set()

    t = threading.Thread(target=produce, daemon=True)
    t.start()

    # writer fills the buffer and then blocks
    deadline = time.monotonic() + 2
    while reader.buffered() < DEFAULT_CAPACITY and time.monotonic() < deadline:
        time.sleep(0.01)
    assert reader.buffered() == DEFAULT_CAPACITY
    assert not finished.wait(0.2)

    # one read frees room and unblocks it
    assert len(reader.read()) == READ_SIZE
    assert finished.wait(2)
    t.join(timeout=2)
    writer.close()
    rest = b"".join(_drain(reader))
    assert len(rest) == DEFAULT_CAPACITY + 1000 - READ_SIZE


def test_read_returns_on_cancel():
    reader, _writer = pipe()
    ctx = Context.background()
    threading.Timer(0.05, ctx.cancel, args=("stop",)).start()

    start = time.monotonic()
    with pytest.raises(StreamCancelledError, match="stop"):
        reader.read(ctx=ctx)
    assert time.monotonic() - start < 2


def test_read_prefers_buffered_bytes_over_cancel():
    reader, writer = pipe()
    writer.write(b"data")
    ctx = Context.background()
    ctx.cancel()
    assert reader.read(ctx=ctx) == b"data"
    with pytest.raises(StreamCancelledError):
        reader.read(ctx=ctx)


def test_blocked_write_returns_on_cancel():
    _reader, writer = pipe(capacity=8)
    ctx = Context.with_timeout(0.05)
    with pytest.raises(StreamCancelledError):
        writer.write(b"0123456789", ctx)


def test_write_after_reader_close_fails():
    reader, writer = pipe()
    reader.close()
    with pytest.raises(BrokenPipeError):
        writer.write(b"x")
    with pytest.raises(ValueError):
        reader.read()


def test_write_after_writer_close_fails():
    reader, writer = pipe()
    writer.write(b"last")
    writer.close()
    with pytest.raises(BrokenPipeError):
        writer.write(b"more")
    assert reader.read() == b"last"
    assert reader.read() == b""


def test_invalid_capacity():
    with pytest.raises(ValueError):
        pipe(capacity=0)
