# tests/unit/test_context.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.core.context import DEADLINE_EXCEEDED, Context
from chatbridge.core.errors import StreamCancelledError


def test_cancel_cascades_to_children():
    parent = Context.background()
    child = parent.child()
    grandchild = child.child()

    parent.cancel("shutdown")
    assert child.done() and grandchild.done()
    assert grandchild.reason == "shutdown"
    with pytest.raises(StreamCancelledError, match="shutdown"):
        grandchild.raise_if_done()


def test_child_cancel_does_not_touch_parent():
    parent = Context.background()
    child = parent.child()
    child.cancel()
    assert child.done()
    assert not parent.done()


def test_child_of_cancelled_parent_starts_done():
    parent = Context.background()
    parent.cancel("gone")
    assert parent.child().reason == "gone"


def test_deadline_expires():
    ctx = Context.with_timeout(0.05)
    assert ctx.remaining() is not None
    assert ctx.wait(2)
    assert ctx.reason == DEADLINE_EXCEEDED
    assert ctx.remaining() == 0.0


def test_child_deadline_never_outlives_parent():
    parent = Context.with_timeout(1.0)
    child = Context.with_timeout(60.0, parent=parent)
    assert child.deadline == parent.deadline


def test_callbacks_run_once():
    ctx = Context.background()
    seen = []
    ctx.add_done_callback(lambda c: seen.append(c.reason))
    ctx.cancel("first")
    ctx.cancel("second")
    assert seen == ["first"]

    # registered after the fact -> runs immediately
    ctx.add_done_callback(lambda c: seen.append("late"))
    assert seen == ["first", "late"]


def test_removed_callback_does_not_run():
    ctx = Context.background()
    seen = []
    cb = lambda c: seen.append(1)  # noqa: E731
    ctx.add_done_callback(cb)
    ctx.remove_done_callback(cb)
    ctx.remove_done_callback(cb)
    ctx.cancel()
    assert seen == []


def test_background_has_no_deadline():
    ctx = Context.background()
    assert ctx.remaining() is None
    assert not ctx.wait(0.01)
    ctx.raise_if_done()
