"""Donation batch domain model.

A batch is one counting session's aggregate donation record. It moves
through a strictly forward lifecycle:

    OPEN -> PRIMARY_ATTESTED -> PENDING_FINALIZATION -> FINALIZED

Rules enforced here:
- Status only advances along the transition matrix, never backwards
- Attestor fields are written once by the step that owns them
- The secondary attestor must differ from the primary attestor
- A FINALIZED batch is immutable
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

CENTS = Decimal("0.01")


class BatchStatus(Enum):
    """State in the batch attestation lifecycle.

    State Machine:
        OPEN -> PRIMARY_ATTESTED (first attestor signs)
        PRIMARY_ATTESTED -> PENDING_FINALIZATION (second attestor signs)
        PENDING_FINALIZATION -> FINALIZED (finalization confirmed)

    Terminal State:
        FINALIZED. No further transitions are permitted.
    """

    OPEN = "OPEN"
    PRIMARY_ATTESTED = "PRIMARY_ATTESTED"
    PENDING_FINALIZATION = "PENDING_FINALIZATION"
    FINALIZED = "FINALIZED"

    @property
    def rank(self) -> int:
        """Position of this status in the forward lifecycle (OPEN is 0)."""
        return _STATUS_ORDER.index(self)

    def is_terminal(self) -> bool:
        """Check if this status is the terminal FINALIZED state."""
        return self is BatchStatus.FINALIZED

    def next_status(self) -> BatchStatus | None:
        """Return the status one step forward, or None for FINALIZED."""
        if self.is_terminal():
            return None
        return _STATUS_ORDER[self.rank + 1]

    def valid_transitions(self) -> frozenset[BatchStatus]:
        """Get valid transitions from this status.

        Returns:
            Frozenset of statuses this status can transition to.
            Empty set for FINALIZED.
        """
        return BATCH_TRANSITIONS.get(self, frozenset())


_STATUS_ORDER: tuple[BatchStatus, ...] = (
    BatchStatus.OPEN,
    BatchStatus.PRIMARY_ATTESTED,
    BatchStatus.PENDING_FINALIZATION,
    BatchStatus.FINALIZED,
)

# Each status may only advance to the next one
BATCH_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    BatchStatus.OPEN: frozenset({BatchStatus.PRIMARY_ATTESTED}),
    BatchStatus.PRIMARY_ATTESTED: frozenset({BatchStatus.PENDING_FINALIZATION}),
    BatchStatus.PENDING_FINALIZATION: frozenset({BatchStatus.FINALIZED}),
    BatchStatus.FINALIZED: frozenset(),
}


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def to_cents(amount: Decimal | int | str) -> Decimal:
    """Quantize a monetary amount to cents."""
    return Decimal(amount).quantize(CENTS)


@dataclass(frozen=True, eq=True)
class Batch:
    """A donation batch under attestation.

    Since Batch is frozen, every transition returns a new instance. The
    store persists the new instance with a compare-and-set on status.

    Attributes:
        id: Opaque batch identifier (immutable).
        status: Current lifecycle status.
        total_amount: Stored total of the batch's donations, in cents.
        church_id: Tenant that owns the batch.
        name: Display name of the counting session.
        primary_attestor_id: User id of the first attestor.
        primary_attestor_name: Signature name typed by the first attestor.
        primary_attested_at: When the first attestation was recorded (UTC).
        secondary_attestor_id: User id of the second attestor.
        secondary_attestor_name: Signature name typed by the second attestor.
        secondary_attested_at: When the second attestation was recorded (UTC).
        finalized_at: When the batch was finalized (UTC).
        confirmed_by: User id of whoever confirmed finalization.
        finalization_id: Token stamped by the finalize write that landed.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
    """

    id: str
    status: BatchStatus = field(default=BatchStatus.OPEN)
    total_amount: Decimal = field(default=Decimal("0.00"))
    church_id: str | None = field(default=None)
    name: str = field(default="")
    primary_attestor_id: str | None = field(default=None)
    primary_attestor_name: str | None = field(default=None)
    primary_attested_at: datetime | None = field(default=None)
    secondary_attestor_id: str | None = field(default=None)
    secondary_attestor_name: str | None = field(default=None)
    secondary_attested_at: datetime | None = field(default=None)
    finalized_at: datetime | None = field(default=None)
    confirmed_by: str | None = field(default=None)
    finalization_id: str | None = field(default=None)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        """Validate batch fields."""
        if not self.id:
            raise ValueError("Batch id must be non-empty")
        object.__setattr__(self, "total_amount", to_cents(self.total_amount))
        if (
            self.primary_attestor_id is not None
            and self.secondary_attestor_id is not None
            and self.primary_attestor_id == self.secondary_attestor_id
        ):
            raise ValueError(
                "Secondary attestor must differ from primary attestor "
                f"(batch {self.id})"
            )

    def _check_transition(self, new_status: BatchStatus) -> None:
        # Import here to avoid circular dependency
        from platesync.domain.errors.state import InvalidStateError

        if new_status not in self.status.valid_transitions():
            raise InvalidStateError(
                batch_id=self.id,
                current_status=self.status,
                operation=f"transition to {new_status.value}",
                allowed_statuses=[_STATUS_ORDER[new_status.rank - 1]],
            )

    def with_primary_attestation(
        self,
        attestor_id: str,
        attestor_name: str,
        attested_at: datetime | None = None,
    ) -> Batch:
        """Record the first signature and advance to PRIMARY_ATTESTED.

        Raises:
            InvalidStateError: If the batch is not OPEN.
        """
        self._check_transition(BatchStatus.PRIMARY_ATTESTED)
        now = attested_at or _utc_now()
        return replace(
            self,
            status=BatchStatus.PRIMARY_ATTESTED,
            primary_attestor_id=attestor_id,
            primary_attestor_name=attestor_name,
            primary_attested_at=now,
            updated_at=now,
        )

    def with_secondary_attestation(
        self,
        attestor_id: str,
        attestor_name: str,
        attested_at: datetime | None = None,
    ) -> Batch:
        """Record the second signature and advance to PENDING_FINALIZATION.

        Raises:
            InvalidStateError: If the batch is not PRIMARY_ATTESTED.
            IdentityConflictError: If attestor_id is the primary attestor.
        """
        from platesync.domain.errors.attestation import IdentityConflictError

        self._check_transition(BatchStatus.PENDING_FINALIZATION)
        if attestor_id == self.primary_attestor_id:
            raise IdentityConflictError(batch_id=self.id, attestor_id=attestor_id)
        now = attested_at or _utc_now()
        return replace(
            self,
            status=BatchStatus.PENDING_FINALIZATION,
            secondary_attestor_id=attestor_id,
            secondary_attestor_name=attestor_name,
            secondary_attested_at=now,
            updated_at=now,
        )

    def with_finalization(
        self,
        finalization_id: str,
        confirmed_by: str | None = None,
        finalized_at: datetime | None = None,
    ) -> Batch:
        """Stamp the batch FINALIZED.

        Raises:
            InvalidStateError: If the batch is not PENDING_FINALIZATION.
        """
        self._check_transition(BatchStatus.FINALIZED)
        now = finalized_at or _utc_now()
        return replace(
            self,
            status=BatchStatus.FINALIZED,
            finalized_at=now,
            confirmed_by=confirmed_by,
            finalization_id=finalization_id,
            updated_at=now,
        )

    def with_total(self, total_amount: Decimal) -> Batch:
        """Return a copy with a new stored total (counting side only).

        Raises:
            InvalidStateError: If the batch is already FINALIZED.
        """
        from platesync.domain.errors.state import InvalidStateError

        if self.status.is_terminal():
            raise InvalidStateError(
                batch_id=self.id,
                current_status=self.status,
                operation="update_total",
                allowed_statuses=list(_STATUS_ORDER[:-1]),
            )
        return replace(self, total_amount=to_cents(total_amount), updated_at=_utc_now())
