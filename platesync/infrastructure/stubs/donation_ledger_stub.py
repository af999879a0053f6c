"""Donation ledger stub implementation.

In-memory implementation of DonationLedgerProtocol for development and
testing. Freezing a batch's ledger makes its donations read-only.

Given the batch store, the stub also treats a FINALIZED batch's ledger as
frozen for good, as the PostgreSQL ledger does through the shared row.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING

from platesync.application.ports.donation_ledger import DonationLedgerProtocol
from platesync.domain.errors import LedgerFrozenError, TransientStoreError
from platesync.domain.models.batch import BatchStatus
from platesync.domain.models.donation import Donation, LedgerSummary

if TYPE_CHECKING:
    from platesync.infrastructure.stubs.batch_store_stub import BatchStoreStub


class DonationLedgerStub(DonationLedgerProtocol):
    """In-memory stub implementation of DonationLedgerProtocol.

    NOT suitable for production use.

    Attributes:
        freeze_calls: Number of freeze invocations.
        thaw_calls: Number of thaw invocations.
    """

    def __init__(self, batch_store: BatchStoreStub | None = None) -> None:
        """Initialize the stub with empty storage.

        Args:
            batch_store: Store consulted for FINALIZED batches, if any.
        """
        self._batch_store = batch_store
        self._donations: dict[str, dict[str, Donation]] = {}
        self._frozen: set[str] = set()
        self._lock = asyncio.Lock()
        self._failures: dict[str, int] = {}
        self.freeze_calls = 0
        self.thaw_calls = 0

    def fail_next(self, operation: str, count: int = 1) -> None:
        """Make the next `count` calls of an operation raise TransientStoreError."""
        self._failures[operation] = count

    async def sum_donations(self, batch_id: str) -> Decimal:
        summary = await self.summarize(batch_id)
        return summary.total

    async def summarize(self, batch_id: str) -> LedgerSummary:
        self._maybe_fail("summarize", batch_id)
        donations = list(self._donations.get(batch_id, {}).values())
        return LedgerSummary.from_donations(batch_id, donations)

    async def list_donations(self, batch_id: str) -> list[Donation]:
        self._maybe_fail("list_donations", batch_id)
        donations = self._donations.get(batch_id, {}).values()
        return sorted(donations, key=lambda d: d.created_at)

    async def freeze(self, batch_id: str) -> None:
        self.freeze_calls += 1
        self._maybe_fail("freeze", batch_id)
        async with self._lock:
            self._frozen.add(batch_id)

    async def thaw(self, batch_id: str) -> None:
        self.thaw_calls += 1
        self._maybe_fail("thaw", batch_id)
        async with self._lock:
            if self._is_finalized(batch_id):
                return
            self._frozen.discard(batch_id)

    async def is_frozen(self, batch_id: str) -> bool:
        self._maybe_fail("is_frozen", batch_id)
        return batch_id in self._frozen or self._is_finalized(batch_id)

    async def add_donation(self, donation: Donation) -> Donation:
        async with self._lock:
            self._check_writable(donation.batch_id, "add_donation")
            entries = self._donations.setdefault(donation.batch_id, {})
            if donation.id in entries:
                raise ValueError(f"Donation already exists: {donation.id}")
            entries[donation.id] = donation
            return donation

    async def update_donation(self, donation: Donation) -> Donation:
        async with self._lock:
            self._check_writable(donation.batch_id, "update_donation")
            entries = self._donations.get(donation.batch_id, {})
            if donation.id not in entries:
                raise KeyError(f"Donation not found: {donation.id}")
            entries[donation.id] = donation
            return donation

    async def remove_donation(self, batch_id: str, donation_id: str) -> None:
        async with self._lock:
            self._check_writable(batch_id, "remove_donation")
            entries = self._donations.get(batch_id, {})
            if donation_id not in entries:
                raise KeyError(f"Donation not found: {donation_id}")
            del entries[donation_id]

    def clear(self) -> None:
        """Clear all stored data and injected failures."""
        self._donations.clear()
        self._frozen.clear()
        self._failures.clear()
        self.freeze_calls = 0
        self.thaw_calls = 0

    def _check_writable(self, batch_id: str, operation: str) -> None:
        if batch_id in self._frozen or self._is_finalized(batch_id):
            raise LedgerFrozenError(batch_id=batch_id, operation=operation)

    def _is_finalized(self, batch_id: str) -> bool:
        if self._batch_store is None:
            return False
        batch = self._batch_store.peek(batch_id)
        return batch is not None and batch.status is BatchStatus.FINALIZED

    def _maybe_fail(self, operation: str, batch_id: str) -> None:
        remaining = self._failures.get(operation, 0)
        if remaining > 0:
            self._failures[operation] = remaining - 1
            raise TransientStoreError(operation, batch_id=batch_id)
