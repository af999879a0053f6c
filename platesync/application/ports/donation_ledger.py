"""Donation ledger port.

The ledger holds a batch's individual donations. The finalization
coordinator freezes it; once frozen, every mutation is rejected with
LedgerFrozenError.

Golden Rules:
1. FREEZE IS IDEMPOTENT - Freezing a frozen ledger is a no-op
2. FROZEN MEANS READ-ONLY - add/update/remove raise LedgerFrozenError
3. SUMS ARE EXACT - Decimal arithmetic, quantized to cents
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from platesync.domain.models.donation import Donation, LedgerSummary


class DonationLedgerProtocol(Protocol):
    """Protocol for donation ledger access."""

    async def sum_donations(self, batch_id: str) -> Decimal:
        """Sum all donations of a batch (0.00 for an empty ledger)."""
        ...

    async def summarize(self, batch_id: str) -> LedgerSummary:
        """Totals of a batch's ledger broken down by donation type."""
        ...

    async def list_donations(self, batch_id: str) -> list[Donation]:
        """List a batch's donations in insertion order."""
        ...

    async def freeze(self, batch_id: str) -> None:
        """Make the batch's ledger read-only."""
        ...

    async def thaw(self, batch_id: str) -> None:
        """Undo a freeze whose finalization did not land.

        Only the finalization coordinator calls this, and only for a
        batch that is still PENDING_FINALIZATION.
        """
        ...

    async def is_frozen(self, batch_id: str) -> bool:
        """Check whether the batch's ledger is frozen."""
        ...

    async def add_donation(self, donation: Donation) -> Donation:
        """Append a donation to its batch's ledger.

        Raises:
            LedgerFrozenError: If the ledger is frozen.
        """
        ...

    async def update_donation(self, donation: Donation) -> Donation:
        """Replace an existing donation.

        Raises:
            LedgerFrozenError: If the ledger is frozen.
            KeyError: If the donation doesn't exist.
        """
        ...

    async def remove_donation(self, batch_id: str, donation_id: str) -> None:
        """Delete a donation.

        Raises:
            LedgerFrozenError: If the ledger is frozen.
            KeyError: If the donation doesn't exist.
        """
        ...
