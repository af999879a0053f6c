"""Read models returned by the attestation workflow.

BatchState is what the presentation layer renders after any step.
FinalizationResult adds the frozen totals once a batch is FINALIZED.
Both are built only from persisted state, so replaying a call returns an
equal value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from platesync.domain.models.batch import Batch, BatchStatus
from platesync.domain.models.donation import LedgerSummary


@dataclass(frozen=True)
class BatchState:
    """Current workflow state of a batch.

    Attributes:
        batch_id: The batch.
        status: Current lifecycle status.
        name: Display name of the counting session.
        church_id: Owning tenant.
        total_amount: Stored total.
        primary_attestor_name: First signature, if any.
        primary_attested_at: When the first signature was recorded.
        secondary_attestor_name: Second signature, if any.
        secondary_attested_at: When the second signature was recorded.
        finalized_at: When the batch was finalized.
    """

    batch_id: str
    status: BatchStatus
    name: str
    church_id: str | None
    total_amount: Decimal
    primary_attestor_name: str | None
    primary_attested_at: datetime | None
    secondary_attestor_name: str | None
    secondary_attested_at: datetime | None
    finalized_at: datetime | None

    @classmethod
    def from_batch(cls, batch: Batch) -> BatchState:
        return cls(
            batch_id=batch.id,
            status=batch.status,
            name=batch.name,
            church_id=batch.church_id,
            total_amount=batch.total_amount,
            primary_attestor_name=batch.primary_attestor_name,
            primary_attested_at=batch.primary_attested_at,
            secondary_attestor_name=batch.secondary_attestor_name,
            secondary_attested_at=batch.secondary_attested_at,
            finalized_at=batch.finalized_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the presentation layer."""
        return {
            "batch_id": self.batch_id,
            "status": self.status.value,
            "name": self.name,
            "church_id": self.church_id,
            "total_amount": str(self.total_amount),
            "primary_attestor_name": self.primary_attestor_name,
            "primary_attested_at": _iso(self.primary_attested_at),
            "secondary_attestor_name": self.secondary_attestor_name,
            "secondary_attested_at": _iso(self.secondary_attested_at),
            "finalized_at": _iso(self.finalized_at),
        }


@dataclass(frozen=True)
class FinalizationResult:
    """Outcome of a successful finalization.

    Attributes:
        batch_id: The finalized batch.
        status: Always FINALIZED.
        finalized_at: When the batch was finalized.
        confirmed_by: Who confirmed finalization.
        primary_attestor_name: First signature.
        secondary_attestor_name: Second signature.
        total_amount: Frozen total.
        cash_total: Frozen CASH subtotal.
        check_total: Frozen CHECK subtotal.
        other_total: Frozen OTHER subtotal.
        donation_count: Number of frozen ledger entries.
        report_available: True when a count report can be rendered from
            the frozen batch and ledger.
    """

    batch_id: str
    status: BatchStatus
    finalized_at: datetime | None
    confirmed_by: str | None
    primary_attestor_name: str | None
    secondary_attestor_name: str | None
    total_amount: Decimal
    cash_total: Decimal
    check_total: Decimal
    other_total: Decimal
    donation_count: int
    report_available: bool

    @classmethod
    def from_frozen(
        cls,
        batch: Batch,
        summary: LedgerSummary,
        ledger_frozen: bool,
    ) -> FinalizationResult:
        return cls(
            batch_id=batch.id,
            status=batch.status,
            finalized_at=batch.finalized_at,
            confirmed_by=batch.confirmed_by,
            primary_attestor_name=batch.primary_attestor_name,
            secondary_attestor_name=batch.secondary_attestor_name,
            total_amount=batch.total_amount,
            cash_total=summary.cash_total,
            check_total=summary.check_total,
            other_total=summary.other_total,
            donation_count=summary.donation_count,
            report_available=batch.status is BatchStatus.FINALIZED and ledger_frozen,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the presentation layer."""
        return {
            "batch_id": self.batch_id,
            "status": self.status.value,
            "finalized_at": _iso(self.finalized_at),
            "confirmed_by": self.confirmed_by,
            "primary_attestor_name": self.primary_attestor_name,
            "secondary_attestor_name": self.secondary_attestor_name,
            "total_amount": str(self.total_amount),
            "cash_total": str(self.cash_total),
            "check_total": str(self.check_total),
            "other_total": str(self.other_total),
            "donation_count": self.donation_count,
            "report_available": self.report_available,
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
