from __future__ import annotations
import logging
import threading
from typing import Callable, Iterator, Optional, Union

from chatbridge.core.context import Context
from chatbridge.core.errors import StreamCancelledError
from chatbridge.streaming.pipe import DEFAULT_CAPACITY, READ_SIZE, PipeReader, PipeWriter, pipe

logger = logging.getLogger(__name__)

Producer = Callable[[Context, PipeWriter], None]

_EOF = object()


class BridgeChatStream:
    """
    Caller-facing handle over the read side of a pipe.
    Once it reports end-of-stream or an error it keeps reporting the same thing.
    """

    def __init__(self, name: str, reader: PipeReader, stream_ctx: Context):
        self.name = name
        self._reader = reader
        self._ctx = stream_ctx
        self._terminal: Union[None, object, BaseException] = None

    def receive(self, ctx: Optional[Context] = None) -> bytes:
        """
        Return the next chunk, b"" at end-of-stream. Blocks until data arrives,
        the stream ends, or either the stream context or `ctx` is done. A done
        `ctx` stops generation as well.
        """
        if self._terminal is _EOF:
            return b""
        if isinstance(self._terminal, BaseException):
            raise self._terminal

        def _stop(done: Context) -> None:
            self._ctx.cancel(done.reason)

        if ctx is not None:
            ctx.add_done_callback(_stop)
        try:
            chunk = self._reader.read(READ_SIZE, self._ctx)
        except Exception as e:
            self._terminal = e
            raise
        finally:
            if ctx is not None:
                ctx.remove_done_callback(_stop)
        if not chunk:
            self._terminal = _EOF
            return b""
        logger.debug("%s: send response: %s", self.name, chunk.decode("utf-8", errors="replace"))
        return chunk

    def close(self) -> None:
        if self._terminal is None:
            self._terminal = StreamCancelledError("stream closed")
        self._ctx.cancel("stream closed")
        self._reader.close()

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.receive()
            if not chunk:
                return
            yield chunk

    def __enter__(self) -> "BridgeChatStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def start_stream(
    ctx: Context,
    name: str,
    producer: Producer,
    *,
    capacity: int = DEFAULT_CAPACITY,
) -> BridgeChatStream:
    """
    Run producer(stream_ctx, writer) on its own thread and return the read handle.

    The writer is closed normally when producer returns, and closed with the
    raised error otherwise. If the stream context was cancelled, the error is
    StreamCancelledError whatever the producer raised on its way out.
    """
    reader, writer = pipe(capacity)
    stream_ctx = ctx.child()

    def _run() -> None:
        try:
            producer(stream_ctx, writer)
        except Exception as e:
            if stream_ctx.done():
                writer.close_with_error(stream_ctx.error())
                logger.info("%s chat stream cancelled: %s", name, stream_ctx.reason)
            else:
                writer.close_with_error(e)
                logger.warning("%s chat stream failed: %s", name, e)
        else:
            writer.close()
            logger.info("%s chat stream finished", name)
        finally:
            stream_ctx.cancel("stream finished")

    thread = threading.Thread(target=_run, name=f"{name} chat stream", daemon=True)
    thread.start()
    return BridgeChatStream(name, reader, stream_ctx)
