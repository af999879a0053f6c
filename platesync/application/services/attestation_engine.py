"""Attestation engine.

Drives a batch through its two-signature approval sequence and hands the
final step to the finalization coordinator.

Developer Golden Rules:
1. STATUS IS THE TRUTH - the step is decided by status, never by which
   attestor fields happen to be filled in
2. VALIDATE BEFORE I/O - input shape errors never touch the store
3. RE-READ BEFORE WRITE - every transition is validated against fresh state
4. COMPARE-AND-SET - a write only lands if the status it was validated
   against is still current
5. NO STALE RESUBMIT - after a lost race the caller gets the error; only a
   spurious conflict with unchanged status is retried

Order of checks for each transition:
    input shape -> batch read -> status guard -> identity guards -> write
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar

import structlog

from platesync.application.services.base import LoggingMixin, traced
from platesync.application.services.error_policy import ErrorAction, ErrorPolicy
from platesync.application.services.store_calls import call_with_timeout
from platesync.config.attestation_config import (
    DEFAULT_ATTESTATION_CONFIG,
    AttestationConfig,
)
from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    IdentityConflictError,
    IneligibleAttestorError,
    InvalidStateError,
    ValidationError,
)
from platesync.domain.models.batch import Batch, BatchStatus
from platesync.domain.models.batch_state import BatchState, FinalizationResult

if TYPE_CHECKING:
    from platesync.application.ports.batch_store import BatchStoreProtocol
    from platesync.application.ports.identity_resolver import (
        IdentityResolverProtocol,
    )
    from platesync.application.services.finalization_coordinator import (
        FinalizationCoordinator,
    )

T = TypeVar("T")

TransitionBuilder = Callable[[Batch], Awaitable[Batch]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_id(field: str, value: str | None) -> str:
    """Return an opaque id unchanged, or raise ValidationError if it is blank."""
    if value is None or not value.strip():
        raise ValidationError(field, "must be non-empty")
    return value


def _require_text(field: str, value: str | None) -> str:
    """Return value stripped, or raise ValidationError if it is blank."""
    return _require_id(field, value).strip()


class AttestationEngine(LoggingMixin):
    """Owns the OPEN -> PRIMARY_ATTESTED -> PENDING_FINALIZATION steps."""

    def __init__(
        self,
        batch_store: BatchStoreProtocol,
        identity_resolver: IdentityResolverProtocol,
        finalization_coordinator: FinalizationCoordinator,
        config: AttestationConfig | None = None,
        error_policy: ErrorPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            batch_store: Store holding the batch records.
            identity_resolver: Looks up attestor identities.
            finalization_coordinator: Performs the terminal transition.
            config: Timeouts and retry limits.
            error_policy: Override for the retry decisions.
            clock: Source of attestation timestamps.
        """
        self._store = batch_store
        self._resolver = identity_resolver
        self._coordinator = finalization_coordinator
        self._config = config or DEFAULT_ATTESTATION_CONFIG
        self._policy = error_policy or ErrorPolicy(
            max_attempts=1,
            conflict_retry_limit=self._config.concurrent_retry_limit,
        )
        self._clock = clock or _utc_now
        self._init_logger(component="attestation")

    @traced
    async def attest_primary(
        self,
        batch_id: str,
        attestor_id: str,
        signature_name: str,
    ) -> BatchState:
        """Record the first attestation of an OPEN batch.

        Args:
            batch_id: The batch being attested.
            attestor_id: User id of the first attestor.
            signature_name: Name typed as the signature.

        Returns:
            The batch state after the transition (PRIMARY_ATTESTED).

        Raises:
            ValidationError: If an input is blank.
            BatchNotFoundError: If the batch doesn't exist.
            InvalidStateError: If the batch is not OPEN.
            IneligibleAttestorError: If the attestor is not a known user.
            ConcurrentModificationError: If another call moved the batch first.
            TransientStoreError: If the store is unavailable.
        """
        attestor_id = _require_id("attestor_id", attestor_id)
        name = _require_text("signature_name", signature_name)
        log = self._log_operation(
            "attest_primary",
            batch_id=batch_id,
            attestor_id=attestor_id,
            signature_length=len(name),
        )

        async def build(batch: Batch) -> Batch:
            self._require_status(batch, BatchStatus.OPEN, "attest_primary", log)
            identity = await self._call(
                self._resolver.get_attestor(attestor_id), "get_attestor", batch.id
            )
            if identity is None:
                log.warning("attestor_rejected", reason="unknown")
                raise IneligibleAttestorError(
                    batch_id=batch.id,
                    attestor_id=attestor_id,
                    reason="unknown",
                )
            return batch.with_primary_attestation(
                attestor_id=attestor_id,
                attestor_name=name,
                attested_at=self._clock(),
            )

        updated = await self._apply_transition(
            batch_id, BatchStatus.OPEN, build, log
        )
        log.info("primary_attestation_recorded", status=updated.status.value)
        return BatchState.from_batch(updated)

    @traced
    async def attest_secondary(
        self,
        batch_id: str,
        attestor_id: str,
        signature_name: str,
    ) -> BatchState:
        """Record the second, independent attestation.

        Args:
            batch_id: The batch being attested.
            attestor_id: User id of the second attestor.
            signature_name: Name typed as the signature.

        Returns:
            The batch state after the transition (PENDING_FINALIZATION).

        Raises:
            ValidationError: If an input is blank.
            BatchNotFoundError: If the batch doesn't exist.
            InvalidStateError: If the batch is not PRIMARY_ATTESTED.
            IdentityConflictError: If the attestor is the primary attestor.
            IneligibleAttestorError: If the attestor is unknown or unverified.
            ConcurrentModificationError: If another call moved the batch first.
            TransientStoreError: If the store is unavailable.
        """
        attestor_id = _require_id("attestor_id", attestor_id)
        name = _require_text("signature_name", signature_name)
        log = self._log_operation(
            "attest_secondary",
            batch_id=batch_id,
            attestor_id=attestor_id,
            signature_length=len(name),
        )

        async def build(batch: Batch) -> Batch:
            self._require_status(
                batch, BatchStatus.PRIMARY_ATTESTED, "attest_secondary", log
            )
            if attestor_id == batch.primary_attestor_id:
                log.warning("attestor_rejected", reason="same_as_primary")
                raise IdentityConflictError(batch_id=batch.id, attestor_id=attestor_id)
            eligible = await self._call(
                self._resolver.is_eligible_attestor(
                    attestor_id,
                    excluding_user_id=batch.primary_attestor_id,
                ),
                "is_eligible_attestor",
                batch.id,
            )
            if not eligible:
                log.warning("attestor_rejected", reason="ineligible")
                raise IneligibleAttestorError(
                    batch_id=batch.id,
                    attestor_id=attestor_id,
                    reason="ineligible",
                )
            return batch.with_secondary_attestation(
                attestor_id=attestor_id,
                attestor_name=name,
                attested_at=self._clock(),
            )

        updated = await self._apply_transition(
            batch_id, BatchStatus.PRIMARY_ATTESTED, build, log
        )
        log.info("secondary_attestation_recorded", status=updated.status.value)
        return BatchState.from_batch(updated)

    @traced
    async def confirm_finalization(
        self,
        batch_id: str,
        confirmed_by: str | None = None,
    ) -> FinalizationResult:
        """Confirm and finalize a fully attested batch.

        A batch that is already FINALIZED returns its existing result.

        Raises:
            ValidationError: If confirmed_by is given but blank.
            BatchNotFoundError: If the batch doesn't exist.
            InvalidStateError: If the batch is OPEN or PRIMARY_ATTESTED.
            LedgerIntegrityError: If the ledger disagrees with the total.
            FinalizationFailedError: If the write budget is exhausted.
        """
        if confirmed_by is not None:
            confirmed_by = _require_id("confirmed_by", confirmed_by)
        log = self._log_operation(
            "confirm_finalization",
            batch_id=batch_id,
            confirmed_by=confirmed_by,
        )
        batch = await self._read(batch_id)
        if batch.status not in (
            BatchStatus.PENDING_FINALIZATION,
            BatchStatus.FINALIZED,
        ):
            log.warning("transition_rejected", status=batch.status.value)
            raise InvalidStateError(
                batch_id=batch_id,
                current_status=batch.status,
                operation="confirm_finalization",
                allowed_statuses=[
                    BatchStatus.PENDING_FINALIZATION,
                    BatchStatus.FINALIZED,
                ],
            )
        return await self._coordinator.finalize(batch_id, confirmed_by=confirmed_by)

    async def get_batch_state(self, batch_id: str) -> BatchState:
        """Return the current state of a batch.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
        """
        return BatchState.from_batch(await self._read(batch_id))

    async def get_latest_finalized(self, church_id: str) -> BatchState | None:
        """Return the tenant's most recently finalized batch, if any."""
        batch = await self._call(
            self._store.get_latest_finalized(church_id), "get_latest_finalized"
        )
        return BatchState.from_batch(batch) if batch is not None else None

    async def list_batches(
        self,
        church_id: str,
        status: BatchStatus,
        limit: int = 100,
        offset: int = 0,
    ) -> list[BatchState]:
        """List a tenant's batches in a status, newest first."""
        if limit < 1:
            raise ValidationError("limit", "must be at least 1")
        if offset < 0:
            raise ValidationError("offset", "must be non-negative")
        batches = await self._call(
            self._store.list_by_status(church_id, status, limit=limit, offset=offset),
            "list_by_status",
        )
        return [BatchState.from_batch(b) for b in batches]

    async def _apply_transition(
        self,
        batch_id: str,
        expected_status: BatchStatus,
        build: TransitionBuilder,
        log: structlog.BoundLogger,
    ) -> Batch:
        """Read, validate and compare-and-set one transition.

        After a conflict the batch is re-read once. A moved status means the
        caller lost the race and the conflict is surfaced; an unchanged
        status is retried with the fresh record within the retry limit.
        """
        batch = await self._read(batch_id)
        conflicts = 0
        while True:
            candidate = await build(batch)
            try:
                return await self._call(
                    self._store.compare_and_set(candidate, expected_status),
                    "compare_and_set",
                    batch_id,
                )
            except ConcurrentModificationError as e:
                conflicts += 1
                current = await self._read(batch_id)
                if current.status is not batch.status:
                    log.warning(
                        "transition_lost_race",
                        expected_status=expected_status.value,
                        actual_status=current.status.value,
                    )
                    raise
                decision = self._policy.decide(e, attempt=conflicts)
                if decision.action is not ErrorAction.REFETCH_AND_RETRY:
                    log.warning("transition_conflict_exhausted", conflicts=conflicts)
                    raise
                log.info("transition_conflict_retrying", conflicts=conflicts)
                batch = current

    def _require_status(
        self,
        batch: Batch,
        required: BatchStatus,
        operation: str,
        log: structlog.BoundLogger,
    ) -> None:
        if batch.status is not required:
            log.warning(
                "transition_rejected",
                status=batch.status.value,
                required_status=required.value,
            )
            raise InvalidStateError(
                batch_id=batch.id,
                current_status=batch.status,
                operation=operation,
                allowed_statuses=[required],
            )

    async def _read(self, batch_id: str) -> Batch:
        batch = await self._call(self._store.get(batch_id), "get", batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    async def _call(
        self,
        awaitable: Awaitable[T],
        operation: str,
        batch_id: str | None = None,
    ) -> T:
        return await call_with_timeout(
            awaitable,
            self._config.store_timeout_seconds,
            operation,
            batch_id,
        )
