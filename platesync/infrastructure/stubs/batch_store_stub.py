"""Batch store stub implementation.

In-memory implementation of BatchStoreProtocol for development and
testing. Compare-and-set is simulated with a single asyncio.Lock, so
the status check and the record swap happen as one unit.

Failure injection lets tests reproduce transient outages, including the
ambiguous case where a write lands but its acknowledgement is lost.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

from platesync.application.ports.batch_store import BatchStoreProtocol
from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    TransientStoreError,
)
from platesync.domain.models.batch import Batch, BatchStatus


class BatchStoreStub(BatchStoreProtocol):
    """In-memory stub implementation of BatchStoreProtocol.

    NOT suitable for production use.

    Attributes:
        compare_and_set_calls: Number of compare_and_set invocations.
    """

    def __init__(self, latency_seconds: float = 0.0) -> None:
        """Initialize the stub with empty storage.

        Args:
            latency_seconds: Simulated I/O delay applied to every call.
        """
        self._batches: dict[str, Batch] = {}
        # Lock for simulating atomic compare-and-set
        self._cas_lock = asyncio.Lock()
        self._latency = latency_seconds
        self._failures: dict[str, int] = {}
        self._apply_before_failing = False
        self.compare_and_set_calls = 0

    def fail_next(
        self,
        operation: str,
        count: int = 1,
        after_write: bool = False,
    ) -> None:
        """Make the next `count` calls of an operation raise TransientStoreError.

        Args:
            operation: "get", "compare_and_set", "list_by_status",
                "get_latest_finalized" or "update_total".
            count: How many consecutive calls fail.
            after_write: For compare_and_set only, apply the write before
                raising (lost acknowledgement).
        """
        self._failures[operation] = count
        if operation == "compare_and_set":
            self._apply_before_failing = after_write

    def set_latency(self, seconds: float) -> None:
        self._latency = seconds

    async def save(self, batch: Batch) -> None:
        if batch.id in self._batches:
            raise ValueError(f"Batch already exists: {batch.id}")
        self._batches[batch.id] = batch

    async def get(self, batch_id: str) -> Batch | None:
        await self._simulate_io("get", batch_id)
        return self._batches.get(batch_id)

    async def list_by_status(
        self,
        church_id: str,
        status: BatchStatus,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Batch]:
        await self._simulate_io("list_by_status")
        matching = [
            b
            for b in self._batches.values()
            if b.church_id == church_id and b.status is status
        ]
        matching.sort(key=lambda b: b.created_at, reverse=True)
        return matching[offset : offset + limit]

    async def get_latest_finalized(self, church_id: str) -> Batch | None:
        await self._simulate_io("get_latest_finalized")
        finalized = [
            b
            for b in self._batches.values()
            if b.church_id == church_id
            and b.status is BatchStatus.FINALIZED
            and b.finalized_at is not None
        ]
        if not finalized:
            return None
        return max(finalized, key=lambda b: b.finalized_at)

    async def compare_and_set(
        self,
        batch: Batch,
        expected_status: BatchStatus,
    ) -> Batch:
        """Swap in the new batch if the stored status is still expected_status.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
            ConcurrentModificationError: If the stored status differs.
            TransientStoreError: If a failure was injected.
        """
        self.compare_and_set_calls += 1
        if self._latency:
            await asyncio.sleep(self._latency)
        async with self._cas_lock:
            ambiguous = self._take_failure("compare_and_set")
            if ambiguous and not self._apply_before_failing:
                raise TransientStoreError("compare_and_set", batch_id=batch.id)

            current = self._batches.get(batch.id)
            if current is None:
                raise BatchNotFoundError(batch.id)
            if current.status is not expected_status:
                raise ConcurrentModificationError(
                    batch_id=batch.id,
                    expected_status=expected_status,
                    operation=f"transition to {batch.status.value}",
                    actual_status=current.status,
                )
            self._batches[batch.id] = batch

            if ambiguous:
                raise TransientStoreError("compare_and_set", batch_id=batch.id)
            return batch

    async def update_total(self, batch_id: str, total_amount: Decimal) -> Batch:
        await self._simulate_io("update_total", batch_id)
        async with self._cas_lock:
            current = self._batches.get(batch_id)
            if current is None:
                raise BatchNotFoundError(batch_id)
            updated = current.with_total(total_amount)
            self._batches[batch_id] = updated
            return updated

    def peek(self, batch_id: str) -> Batch | None:
        """Return the stored batch without latency or injected failures."""
        return self._batches.get(batch_id)

    def put(self, batch: Batch) -> None:
        """Overwrite a batch directly, bypassing every guard (test setup)."""
        self._batches[batch.id] = batch

    def clear(self) -> None:
        """Clear all stored data and injected failures."""
        self._batches.clear()
        self._failures.clear()
        self._apply_before_failing = False
        self.compare_and_set_calls = 0

    async def _simulate_io(self, operation: str, batch_id: str | None = None) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._take_failure(operation):
            raise TransientStoreError(operation, batch_id=batch_id)

    def _take_failure(self, operation: str) -> bool:
        remaining = self._failures.get(operation, 0)
        if remaining <= 0:
            return False
        self._failures[operation] = remaining - 1
        return True
