"""Batch state errors.

This module defines errors for operations that do not apply to the
batch's current status, and for batches that do not exist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from platesync.domain.errors.workflow import WorkflowError

if TYPE_CHECKING:
    from platesync.domain.models.batch import BatchStatus


class InvalidStateError(WorkflowError):
    """Raised when an operation is not valid for the batch's current status.

    Surfaced immediately to the caller, never retried automatically.
    A second submission of an already-applied step (duplicate network
    retry, double click) lands here because the status has moved on.

    Attributes:
        batch_id: The batch the operation targeted.
        current_status: Status of the batch when the guard ran.
        operation: Name of the rejected operation.
        allowed_statuses: Statuses in which the operation is valid.
    """

    def __init__(
        self,
        batch_id: str,
        current_status: BatchStatus,
        operation: str,
        allowed_statuses: list[BatchStatus] | None = None,
    ) -> None:
        """Initialize invalid state error.

        Args:
            batch_id: The batch the operation targeted.
            current_status: Status of the batch when the guard ran.
            operation: Name of the rejected operation.
            allowed_statuses: Statuses in which the operation is valid.
        """
        self.batch_id = batch_id
        self.current_status = current_status
        self.operation = operation
        self.allowed_statuses = allowed_statuses or []

        allowed_str = (
            f" Allowed from: {[s.value for s in self.allowed_statuses]}"
            if self.allowed_statuses
            else ""
        )
        super().__init__(
            f"Operation {operation} is not valid for batch {batch_id} "
            f"in status {current_status.value}.{allowed_str}"
        )


class BatchNotFoundError(WorkflowError):
    """Raised when a batch id does not exist in the batch store.

    Attributes:
        batch_id: The batch id that was not found.
    """

    def __init__(self, batch_id: str) -> None:
        self.batch_id = batch_id
        super().__init__(f"Batch not found: {batch_id}")
