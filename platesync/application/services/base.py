"""Logging support shared by the workflow services.

LoggingMixin gives each service a structlog logger carrying its class name
and component. Each public operation derives an operation-scoped logger
from it with the ids the operation works on.

@traced runs a public workflow operation under a correlation id, so the
engine's entries and the coordinator's entries for one confirm share it.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import structlog

from platesync.infrastructure.observability.correlation import (
    correlation_scope,
    get_correlation_id,
)

P = ParamSpec("P")
R = TypeVar("R")


def traced(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Run an async operation inside a correlation scope."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with correlation_scope():
            return await func(*args, **kwargs)

    return wrapper


class LoggingMixin:
    """Structured logging for services.

    Call _init_logger() at the end of __init__. Entries carry:
    - service: the concrete class name
    - component: "attestation", "finalization", ...
    - operation and correlation_id, once _log_operation() is used
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "attestation") -> None:
        self._log = structlog.get_logger().bind(
            service=type(self).__name__,
            component=component,
        )

    def _log_operation(
        self,
        operation: str,
        **context: object,
    ) -> structlog.BoundLogger:
        """Logger for one call of an operation.

        Example:
            log = self._log_operation("attest_primary", batch_id=batch_id)
            log.warning("transition_rejected", status=batch.status.value)
        """
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **context,
        )
