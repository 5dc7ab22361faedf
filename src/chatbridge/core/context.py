from __future__ import annotations
import threading
import time
from typing import Callable, List, Optional

from .errors import StreamCancelledError

DEADLINE_EXCEEDED = "deadline exceeded"


class Context:
    """
    Cooperative cancellation handle passed through every call that may block.

    - cancel(reason) marks the context done and cascades to children
    - an optional deadline (monotonic seconds) makes the context done once it passes
    - done-callbacks run once, on the thread that cancels (or expires) the context

    Thread-safe. A context never becomes "undone".
    """

    def __init__(self, *, parent: Optional["Context"] = None, deadline: Optional[float] = None):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._children: List[Context] = []
        self._callbacks: List[Callable[[Context], None]] = []
        self._timer: Optional[threading.Timer] = None
        self._parent = parent

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if deadline is not None:
            delay = deadline - time.monotonic()
            if delay <= 0:
                self.cancel(DEADLINE_EXCEEDED)
            else:
                self._timer = threading.Timer(delay, self.cancel, args=(DEADLINE_EXCEEDED,))
                self._timer.daemon = True
                self._timer.start()

        if parent is not None:
            parent._link_child(self)

    @classmethod
    def background(cls) -> "Context":
        """A context that is never cancelled unless cancel() is called on it."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float, parent: Optional["Context"] = None) -> "Context":
        return cls(parent=parent, deadline=time.monotonic() + float(seconds))

    def child(self) -> "Context":
        return Context(parent=self)

    # ----- state -----

    def done(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline (never negative), or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context is done or timeout elapses. Returns done()."""
        return self._event.wait(timeout)

    def raise_if_done(self) -> None:
        if self._event.is_set():
            raise self.error()

    def error(self) -> StreamCancelledError:
        return StreamCancelledError(self._reason or "operation cancelled")

    # ----- transitions -----

    def cancel(self, reason: Optional[str] = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason or "operation cancelled"
            self._event.set()
            children = list(self._children)
            callbacks = list(self._callbacks)
            self._callbacks.clear()
            timer = self._timer
        if timer is not None:
            timer.cancel()
        if self._parent is not None:
            self._parent._unlink_child(self)
        for child in children:
            child.cancel(self._reason)
        for cb in callbacks:
            cb(self)

    def add_done_callback(self, fn: Callable[["Context"], None]) -> None:
        """Run fn(ctx) when the context is done; runs immediately if it already is."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(fn)
                return
        fn(self)

    def remove_done_callback(self, fn: Callable[["Context"], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(fn)
            except ValueError:
                pass

    def _link_child(self, child: "Context") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
            reason = self._reason
        child.cancel(reason)

    def _unlink_child(self, child: "Context") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def __repr__(self) -> str:
        return f"Context(done={self.done()}, reason={self._reason!r}, deadline={self.deadline!r})"
