"""Correlation ids for tracing one workflow call through its log entries.

The id is kept in a ContextVar, so concurrent calls for different batches
each see their own id across await points. Background side-effect tasks
copy the context at creation and keep the id of the call that spawned them.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

_correlation_id: ContextVar[str] = ContextVar("platesync_correlation_id", default="")


def generate_correlation_id() -> str:
    return uuid4().hex


def get_correlation_id() -> str:
    """Current correlation id, "" outside any traced call."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Trace the enclosed block under one correlation id.

    Reuses the caller's id when one is already set, otherwise uses the
    given id or a fresh one. The previous value is restored on exit.

    Example:
        with correlation_scope(request_id):
            await engine.confirm_finalization(batch_id)
    """
    current = _correlation_id.get()
    value = current or correlation_id or generate_correlation_id()
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp the current correlation id on an entry that lacks one."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict
