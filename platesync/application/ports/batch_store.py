"""Batch store port.

This module defines the abstract interface for batch persistence.

Golden Rules:
1. FAIL LOUD - Store raises on errors, never returns partial writes
2. CAS FOR TRANSITIONS - Every status change goes through compare_and_set()
3. ATOMIC UNIT - Status, attestor fields and timestamps land together
4. TRANSIENT IS NOT SUCCESS - Timeouts and lost connections raise
   TransientStoreError; the write may or may not have landed
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from platesync.domain.models.batch import Batch, BatchStatus


class BatchStoreProtocol(Protocol):
    """Protocol for batch storage operations.

    Implementations may use PostgreSQL, in-memory storage, or other
    backends.

    Methods:
        save: Store a new batch
        get: Retrieve a batch by ID
        list_by_status: List a tenant's batches in a status
        get_latest_finalized: Most recently finalized batch of a tenant
        compare_and_set: Atomic transition keyed on expected prior status
        update_total: Record a new stored total (counting side)
    """

    async def save(self, batch: Batch) -> None:
        """Save a new batch.

        Raises:
            ValueError: If batch.id already exists.
        """
        ...

    async def get(self, batch_id: str) -> Batch | None:
        """Retrieve a batch by ID.

        Returns:
            The batch if found, None otherwise.
        """
        ...

    async def list_by_status(
        self,
        church_id: str,
        status: BatchStatus,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Batch]:
        """List a tenant's batches in a status, newest first."""
        ...

    async def get_latest_finalized(self, church_id: str) -> Batch | None:
        """Return the tenant's most recently finalized batch, if any."""
        ...

    async def compare_and_set(
        self,
        batch: Batch,
        expected_status: BatchStatus,
    ) -> Batch:
        """Persist a transitioned batch if the stored status is unchanged.

        The write is accepted only when the batch's stored status equals
        expected_status at write time. All fields of the new batch are
        written as one atomic unit.

        Implementation Notes:
        - PostgreSQL: UPDATE ... WHERE id = :id AND status = :expected RETURNING *
        - In-memory: check and swap under a lock

        Args:
            batch: The new batch value (already transitioned).
            expected_status: The status the transition was validated against.

        Returns:
            The batch as stored.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
            ConcurrentModificationError: If the stored status differs.
            TransientStoreError: If the store is temporarily unreachable.
        """
        ...

    async def update_total(self, batch_id: str, total_amount: Decimal) -> Batch:
        """Record a new stored total for a batch that is not yet finalized.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
            InvalidStateError: If the batch is FINALIZED.
        """
        ...
