"""Finalization errors."""

from __future__ import annotations

from platesync.domain.errors.workflow import WorkflowError


class FinalizationFailedError(WorkflowError):
    """Raised when finalization exhausts its retry budget.

    Terminal for this call. Normally the batch is left in
    PENDING_FINALIZATION with a mutable ledger, so the user can safely
    confirm again later.

    When write_outcome_unknown is set, the last write may have landed and
    the store could not be read back to tell. The ledger is then left
    frozen, and confirming again resolves the outcome either way.

    Attributes:
        batch_id: The batch that failed to finalize.
        attempts: Number of write attempts made.
        last_error: The last error seen.
        write_outcome_unknown: True if the batch may already be FINALIZED.
    """

    def __init__(
        self,
        batch_id: str,
        attempts: int,
        last_error: BaseException | None = None,
        write_outcome_unknown: bool = False,
    ) -> None:
        self.batch_id = batch_id
        self.attempts = attempts
        self.last_error = last_error
        self.write_outcome_unknown = write_outcome_unknown
        if write_outcome_unknown:
            outcome = "batch may already be FINALIZED; confirm again to resolve"
        else:
            outcome = "batch remains PENDING_FINALIZATION"
        super().__init__(
            f"Finalization of batch {batch_id} failed after {attempts} "
            f"attempt(s); {outcome}"
        )
