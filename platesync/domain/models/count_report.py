"""Count report payload handed to the report collaborator.

Built once, from the frozen batch and ledger, right after finalization.
It carries exactly what the emailed count report shows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from platesync.domain.models.batch import Batch
from platesync.domain.models.donation import LedgerSummary


@dataclass(frozen=True)
class CountReport:
    """Summary of a finalized count.

    Attributes:
        batch_id: The finalized batch.
        batch_name: Display name of the count.
        church_id: Owning tenant.
        finalized_at: When the count was finalized.
        total_amount: Frozen total.
        cash_total: Cash subtotal.
        check_total: Check subtotal.
        donation_count: Number of donations.
        primary_attestor_name: First signature.
        secondary_attestor_name: Second signature.
    """

    batch_id: str
    batch_name: str
    church_id: str | None
    finalized_at: datetime | None
    total_amount: Decimal
    cash_total: Decimal
    check_total: Decimal
    donation_count: int
    primary_attestor_name: str | None
    secondary_attestor_name: str | None

    @classmethod
    def from_frozen(cls, batch: Batch, summary: LedgerSummary) -> CountReport:
        return cls(
            batch_id=batch.id,
            batch_name=batch.name,
            church_id=batch.church_id,
            finalized_at=batch.finalized_at,
            total_amount=batch.total_amount,
            cash_total=summary.cash_total,
            check_total=summary.check_total,
            donation_count=summary.donation_count,
            primary_attestor_name=batch.primary_attestor_name,
            secondary_attestor_name=batch.secondary_attestor_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Template variables for the report renderer."""
        return {
            "batch_id": self.batch_id,
            "batch_name": self.batch_name,
            "church_id": self.church_id,
            "finalized_at": (
                self.finalized_at.isoformat() if self.finalized_at else None
            ),
            "total_amount": str(self.total_amount),
            "cash_amount": str(self.cash_total),
            "check_amount": str(self.check_total),
            "donation_count": self.donation_count,
            "primary_attestor_name": self.primary_attestor_name,
            "secondary_attestor_name": self.secondary_attestor_name,
        }
