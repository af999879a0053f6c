"""Donation ledger errors."""

from __future__ import annotations

from decimal import Decimal

from platesync.domain.errors.workflow import WorkflowError


class LedgerIntegrityError(WorkflowError):
    """Raised when the ledger sum disagrees with the batch's stored total.

    Always fatal and never retried: the financial total cannot be trusted
    and needs manual investigation. Finalization is halted and the batch
    stays in PENDING_FINALIZATION.

    Attributes:
        batch_id: The batch being finalized.
        stored_total: Total recorded on the batch.
        ledger_total: Sum recomputed from the donation ledger.
    """

    def __init__(
        self,
        batch_id: str,
        stored_total: Decimal,
        ledger_total: Decimal,
    ) -> None:
        self.batch_id = batch_id
        self.stored_total = stored_total
        self.ledger_total = ledger_total
        super().__init__(
            f"Ledger total {ledger_total} does not match stored total "
            f"{stored_total} for batch {batch_id}"
        )

    @property
    def discrepancy(self) -> Decimal:
        """Stored total minus ledger total."""
        return self.stored_total - self.ledger_total


class LedgerFrozenError(WorkflowError):
    """Raised when a donation write targets a frozen (finalized) ledger.

    Attributes:
        batch_id: The batch whose ledger is frozen.
        operation: The rejected ledger operation.
    """

    def __init__(self, batch_id: str, operation: str) -> None:
        self.batch_id = batch_id
        self.operation = operation
        super().__init__(
            f"Ledger for batch {batch_id} is frozen; {operation} rejected"
        )
