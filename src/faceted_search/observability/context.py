"""Correlation fields attached to every structured log record.

The context carries the active trace and span ids and, while a query is
compiled or a document is built, the content partition being worked on.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING
from uuid import uuid4


if TYPE_CHECKING:
    from collections.abc import Iterator

trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def get_trace_context() -> dict:
    """Current correlation fields; ids are generated when no trace is active."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {**(ctx or {}), "trace_id": uuid4().hex, "span_id": uuid4().hex[:16]}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str, *, trace_id: str | None = None) -> None:
    """Point the context at a new span.

    An existing trace id is kept; ``trace_id`` is only adopted when the
    context has none yet.
    """
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "trace_id": ctx.get("trace_id") or trace_id, "span_id": span_id})


@contextmanager
def bind_partition(partition: str) -> Iterator[None]:
    """Tag log records written inside the block with ``partition``."""
    token = trace_context.set({**(trace_context.get() or {}), "partition": partition})
    try:
        yield
    finally:
        trace_context.reset(token)
