"""Donation ledger entry domain model.

A donation belongs to exactly one batch. Donations are created while the
batch is being counted and become read-only once the batch's ledger is
frozen by finalization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from platesync.domain.models.batch import to_cents


class DonationType(Enum):
    """How a donation was given.

    Types:
        CASH: Cash in the plate
        CHECK: Paper check (check_number recorded when known)
        OTHER: Anything else counted with the batch
    """

    CASH = "CASH"
    CHECK = "CHECK"
    OTHER = "OTHER"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=True)
class Donation:
    """A single ledger entry.

    Attributes:
        id: Opaque donation identifier.
        batch_id: Owning batch.
        amount: Positive amount in cents.
        donation_type: CASH, CHECK or OTHER.
        check_number: Check number for CHECK donations.
        member_id: Donating member, None for anonymous plate cash.
        notes: Free-text notes.
        created_at: When the entry was recorded (UTC).
    """

    id: str
    batch_id: str
    amount: Decimal
    donation_type: DonationType = field(default=DonationType.CASH)
    check_number: str | None = field(default=None)
    member_id: str | None = field(default=None)
    notes: str | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate donation fields."""
        amount = to_cents(self.amount)
        if amount <= 0:
            raise ValueError(f"Donation amount must be positive, got {amount}")
        object.__setattr__(self, "amount", amount)


@dataclass(frozen=True, eq=True)
class LedgerSummary:
    """Totals of a batch's ledger, broken down by donation type.

    Attributes:
        batch_id: The summarized batch.
        total: Sum of all donations.
        cash_total: Sum of CASH donations.
        check_total: Sum of CHECK donations.
        other_total: Sum of OTHER donations.
        donation_count: Number of ledger entries.
    """

    batch_id: str
    total: Decimal = field(default=Decimal("0.00"))
    cash_total: Decimal = field(default=Decimal("0.00"))
    check_total: Decimal = field(default=Decimal("0.00"))
    other_total: Decimal = field(default=Decimal("0.00"))
    donation_count: int = field(default=0)

    @classmethod
    def from_donations(cls, batch_id: str, donations: list[Donation]) -> LedgerSummary:
        """Build a summary from a list of ledger entries."""
        by_type = {t: Decimal("0.00") for t in DonationType}
        for donation in donations:
            by_type[donation.donation_type] += donation.amount
        return cls(
            batch_id=batch_id,
            total=to_cents(sum(by_type.values(), Decimal("0.00"))),
            cash_total=to_cents(by_type[DonationType.CASH]),
            check_total=to_cents(by_type[DonationType.CHECK]),
            other_total=to_cents(by_type[DonationType.OTHER]),
            donation_count=len(donations),
        )
