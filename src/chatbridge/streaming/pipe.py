"""
Bounded in-memory byte pipe connecting one producer thread to one reader.

- write() blocks while the buffer holds `capacity` bytes (backpressure)
- read() blocks while the buffer is empty and the writer has not closed
- close() / close_with_error() are terminal; buffered bytes are still readable
  and the terminal condition is reported only after they are drained
- both sides observe an optional Context and raise StreamCancelledError when it
  is done while they would otherwise block
"""
from __future__ import annotations
import threading
from typing import Optional, Tuple

from chatbridge.core.context import Context

DEFAULT_CAPACITY = 4 * 1024
READ_SIZE = 2048


class _PipeState:
    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("pipe capacity must be positive")
        self.capacity = capacity
        self.buf = bytearray()
        self.cond = threading.Condition()
        self.write_closed = False
        self.read_closed = False
        self.error: Optional[BaseException] = None

    def wake(self, _ctx: Optional[Context] = None) -> None:
        with self.cond:
            self.cond.notify_all()


class _Waiter:
    """Wakes the pipe's condition when ctx is done, for the duration of a with-block."""

    def __init__(self, state: _PipeState, ctx: Optional[Context]):
        self.state = state
        self.ctx = ctx

    def __enter__(self) -> "_Waiter":
        if self.ctx is not None:
            self.ctx.add_done_callback(self.state.wake)
        return self

    def __exit__(self, *exc) -> None:
        if self.ctx is not None:
            self.ctx.remove_done_callback(self.state.wake)


class PipeReader:
    def __init__(self, state: _PipeState):
        self._s = state

    def read(self, size: int = READ_SIZE, ctx: Optional[Context] = None) -> bytes:
        """
        Return up to `size` buffered bytes, blocking until some arrive.
        b"" means the writer closed normally. A writer error is raised only
        once the buffer is empty, and on every read after that.
        """
        s = self._s
        with _Waiter(s, ctx), s.cond:
            while True:
                if s.read_closed:
                    raise ValueError("read from closed pipe")
                if s.buf:
                    chunk = bytes(s.buf[:size])
                    del s.buf[:size]
                    s.cond.notify_all()
                    return chunk
                if s.write_closed:
                    if s.error is not None:
                        raise s.error
                    return b""
                if ctx is not None:
                    ctx.raise_if_done()
                s.cond.wait()

    def buffered(self) -> int:
        with self._s.cond:
            return len(self._s.buf)

    def close(self) -> None:
        """Stop reading; pending and future writes fail with BrokenPipeError."""
        s = self._s
        with s.cond:
            s.read_closed = True
            s.buf.clear()
            s.cond.notify_all()


class PipeWriter:
    def __init__(self, state: _PipeState):
        self._s = state

    def write(self, data: bytes, ctx: Optional[Context] = None) -> int:
        """Write all of data, blocking while the buffer is full. Returns len(data)."""
        s = self._s
        view = memoryview(bytes(data))
        written = 0
        with _Waiter(s, ctx), s.cond:
            while written < len(view):
                if s.write_closed:
                    raise BrokenPipeError("write to closed pipe")
                if s.read_closed:
                    raise BrokenPipeError("pipe reader closed")
                room = s.capacity - len(s.buf)
                if room > 0:
                    take = view[written:written + room]
                    s.buf.extend(take)
                    written += len(take)
                    s.cond.notify_all()
                    continue
                if ctx is not None:
                    ctx.raise_if_done()
                s.cond.wait()
        return written

    def close(self) -> None:
        self.close_with_error(None)

    def close_with_error(self, error: Optional[BaseException]) -> None:
        """First close wins; later calls are ignored."""
        s = self._s
        with s.cond:
            if s.write_closed:
                return
            s.write_closed = True
            s.error = error
            s.cond.notify_all()


def pipe(capacity: int = DEFAULT_CAPACITY) -> Tuple[PipeReader, PipeWriter]:
    state = _PipeState(capacity)
    return PipeReader(state), PipeWriter(state)
