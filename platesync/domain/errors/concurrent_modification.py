"""Concurrent modification error for compare-and-set batch writes.

A transition's write is only accepted when the batch's status at write
time still matches the status the transition read. When it does not,
another participant changed the batch first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from platesync.domain.errors.workflow import WorkflowError

if TYPE_CHECKING:
    from platesync.domain.models.batch import BatchStatus


class ConcurrentModificationError(WorkflowError):
    """Raised when a compare-and-set write loses a race.

    This is a recoverable error. The caller should re-read the batch and
    decide whether to retry; stale input must not be resubmitted against
    a status it was not validated for.

    Attributes:
        batch_id: The batch that was being modified.
        expected_status: The status the write expected to find.
        actual_status: The status found at write time, when known.
        operation: Name of the transition that failed.
    """

    def __init__(
        self,
        batch_id: str,
        expected_status: BatchStatus,
        operation: str,
        actual_status: BatchStatus | None = None,
    ) -> None:
        """Initialize concurrent modification error.

        Args:
            batch_id: The batch being modified.
            expected_status: The status expected for the write.
            operation: Name of the failed transition.
            actual_status: The status found at write time, if known.
        """
        self.batch_id = batch_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        self.operation = operation
        found = f" Found: {actual_status.value}." if actual_status else ""
        super().__init__(
            f"Concurrent modification detected for batch {batch_id} "
            f"during {operation}. Expected status: {expected_status.value}.{found}"
        )
