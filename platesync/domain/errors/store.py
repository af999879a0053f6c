"""Storage availability errors."""

from __future__ import annotations

from platesync.domain.errors.workflow import WorkflowError


class TransientStoreError(WorkflowError):
    """Raised when a store operation fails for a reason that may pass.

    Covers timeouts and lost connections. It never means success: a
    caller that sees it must assume the write may or may not have landed
    and re-read before acting.

    Attributes:
        operation: The store operation that failed.
        batch_id: The batch involved, when known.
        cause: The underlying exception, when there is one.
    """

    def __init__(
        self,
        operation: str,
        batch_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.batch_id = batch_id
        self.cause = cause
        target = f" for batch {batch_id}" if batch_id else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store operation {operation} failed{target}{detail}")
