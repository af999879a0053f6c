"""Finalization coordinator.

Performs the only irreversible transition of the workflow,
PENDING_FINALIZATION -> FINALIZED, and freezes the donation ledger.

Developer Golden Rules:
1. RE-READ FIRST - authoritative state is fetched immediately before mutating
2. IDEMPOTENT - a FINALIZED batch returns its existing result, no side effects
3. INTEGRITY HALTS - a ledger sum mismatch is never retried
4. BOUNDED RETRY - transient write failures back off, then fail terminally
5. NO HALF STATES - a failed write leaves PENDING_FINALIZATION and a thawed
   ledger; a write of unknown outcome leaves the ledger frozen until the next
   confirm reads back what happened
6. SIDE EFFECTS ONCE - only the write that landed dispatches follow-ups, late
   if its acknowledgement was lost

Concurrency:
    Calls for the same batch id are serialized in-process with a keyed
    asyncio.Lock. Across processes the store's compare-and-set decides the
    winner and the finalization_id token tells each caller whose write
    landed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, TypeVar
from uuid import uuid4

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
    FinalizationFailedError,
    InvalidStateError,
    LedgerIntegrityError,
    TransientStoreError,
)
from platesync.domain.models.batch import Batch, BatchStatus
from platesync.domain.models.batch_state import FinalizationResult
from platesync.domain.models.donation import LedgerSummary

if TYPE_CHECKING:
    from platesync.application.ports.batch_store import BatchStoreProtocol
    from platesync.application.ports.donation_ledger import DonationLedgerProtocol
    from platesync.application.services.finalization_side_effects import (
        FinalizationSideEffectDispatcher,
    )

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FinalizationCoordinator(LoggingMixin):
    """Executes PENDING_FINALIZATION -> FINALIZED exactly once per batch."""

    def __init__(
        self,
        batch_store: BatchStoreProtocol,
        ledger: DonationLedgerProtocol,
        side_effects: FinalizationSideEffectDispatcher | None = None,
        config: AttestationConfig | None = None,
        error_policy: ErrorPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the coordinator.

        Args:
            batch_store: Store holding the batch records.
            ledger: Donation ledger to freeze and total.
            side_effects: Follow-up dispatcher; None disables follow-ups.
            config: Timeouts and retry budgets.
            error_policy: Override for the retry decisions.
            clock: Source of finalized_at timestamps.
            sleep: Awaitable sleep used between retries.
        """
        self._store = batch_store
        self._ledger = ledger
        self._side_effects = side_effects
        self._config = config or DEFAULT_ATTESTATION_CONFIG
        self._policy = error_policy or ErrorPolicy(
            max_attempts=self._config.finalization_max_attempts,
            base_delay_seconds=self._config.finalization_backoff_base_seconds,
            max_delay_seconds=self._config.finalization_backoff_max_seconds,
            conflict_retry_limit=self._config.concurrent_retry_limit,
        )
        self._clock = clock or _utc_now
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}
        # batch_id -> token of a write whose outcome could not be read back
        self._unacknowledged: dict[str, str] = {}
        self._init_logger(component="finalization")

    @traced
    async def finalize(
        self,
        batch_id: str,
        confirmed_by: str | None = None,
    ) -> FinalizationResult:
        """Finalize a batch, or return the result of an earlier finalization.

        Args:
            batch_id: The batch to finalize.
            confirmed_by: User id of whoever confirmed finalization.

        Returns:
            FinalizationResult describing the frozen batch.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
            InvalidStateError: If the batch is not PENDING_FINALIZATION
                or FINALIZED.
            LedgerIntegrityError: If the ledger sum differs from the
                stored total.
            FinalizationFailedError: If the write budget is exhausted.
            TransientStoreError: If a read needed before mutating fails.
        """
        log = self._log_operation(
            "finalize",
            batch_id=batch_id,
            confirmed_by=confirmed_by,
        )
        async with self._batch_lock(batch_id):
            return await self._finalize_locked(batch_id, confirmed_by, log)

    async def _finalize_locked(
        self,
        batch_id: str,
        confirmed_by: str | None,
        log: structlog.BoundLogger,
    ) -> FinalizationResult:
        batch = await self._read(batch_id)
        unacknowledged = self._unacknowledged.get(batch_id)

        if batch.status is BatchStatus.FINALIZED:
            if unacknowledged is not None and batch.finalization_id == unacknowledged:
                log.info("finalization_acknowledged_late", finalization_id=unacknowledged)
                summary = await self._call(
                    self._ledger.summarize(batch_id), "summarize", batch_id
                )
                del self._unacknowledged[batch_id]
                return self._complete(batch, summary, log)
            self._unacknowledged.pop(batch_id, None)
            log.info("finalization_replayed", finalized_at=str(batch.finalized_at))
            return await self._existing_result(batch)

        # A write that failed ambiguously did not land after all
        self._unacknowledged.pop(batch_id, None)

        if batch.status is not BatchStatus.PENDING_FINALIZATION:
            log.warning("finalization_rejected", status=batch.status.value)
            raise InvalidStateError(
                batch_id=batch_id,
                current_status=batch.status,
                operation="finalize",
                allowed_statuses=[BatchStatus.PENDING_FINALIZATION],
            )

        try:
            await self._call(self._ledger.freeze(batch_id), "freeze", batch_id)
            summary = await self._call(
                self._ledger.summarize(batch_id), "summarize", batch_id
            )
            if summary.total != batch.total_amount:
                log.critical(
                    "ledger_integrity_violation",
                    stored_total=str(batch.total_amount),
                    ledger_total=str(summary.total),
                    donation_count=summary.donation_count,
                )
                raise LedgerIntegrityError(
                    batch_id=batch_id,
                    stored_total=batch.total_amount,
                    ledger_total=summary.total,
                )
            stored, won = await self._write_finalized(batch, confirmed_by, log)
        except FinalizationFailedError as e:
            if e.write_outcome_unknown:
                # The batch may be FINALIZED, so its ledger must stay frozen
                log.warning("ledger_left_frozen", reason="write_outcome_unknown")
            else:
                await self._thaw_after_failure(batch_id, log)
            raise
        except Exception:
            await self._thaw_after_failure(batch_id, log)
            raise

        if not won:
            log.info(
                "finalization_won_elsewhere",
                finalization_id=stored.finalization_id,
            )
            return await self._existing_result(stored)
        return self._complete(stored, summary, log)

    def _complete(
        self,
        stored: Batch,
        summary: LedgerSummary,
        log: structlog.BoundLogger,
    ) -> FinalizationResult:
        """Log and dispatch follow-ups for the write this coordinator landed."""
        log.info(
            "batch_finalized",
            finalization_id=stored.finalization_id,
            total_amount=str(stored.total_amount),
            donation_count=summary.donation_count,
        )
        if self._side_effects is not None:
            self._side_effects.dispatch(stored, summary)
        return FinalizationResult.from_frozen(stored, summary, ledger_frozen=True)

    async def _write_finalized(
        self,
        batch: Batch,
        confirmed_by: str | None,
        log: structlog.BoundLogger,
    ) -> tuple[Batch, bool]:
        """Compare-and-set the batch to FINALIZED.

        Every failed write is followed by a re-read. A failed re-read spends
        an attempt from the transient budget, whatever the write error was.

        Returns:
            The stored FINALIZED batch and whether this call's write is the
            one that landed.

        Raises:
            FinalizationFailedError: If the budget runs out. The error's
                write_outcome_unknown is set when the last re-read failed.
        """
        finalization_id = uuid4().hex
        candidate = batch.with_finalization(
            finalization_id=finalization_id,
            confirmed_by=confirmed_by,
            finalized_at=self._clock(),
        )
        attempt = 0
        conflicts = 0
        while True:
            try:
                stored = await self._call(
                    self._store.compare_and_set(
                        candidate, BatchStatus.PENDING_FINALIZATION
                    ),
                    "compare_and_set",
                    batch.id,
                )
                return stored, True
            except ConcurrentModificationError as e:
                conflicts += 1
                error: Exception = e
                current = await self._reread_quietly(batch.id, log)
                if current is not None:
                    if current.status is BatchStatus.FINALIZED:
                        return current, current.finalization_id == finalization_id
                    decision = self._policy.decide(e, attempt=conflicts)
                    if (
                        current.status is not BatchStatus.PENDING_FINALIZATION
                        or decision.action is not ErrorAction.REFETCH_AND_RETRY
                    ):
                        raise
                    log.info("finalization_conflict_retrying", conflicts=conflicts)
                    continue
            except TransientStoreError as e:
                error = e
                log.warning(
                    "finalization_write_failed",
                    attempt=attempt + 1,
                    max_attempts=self._policy.max_attempts,
                    error=str(e),
                )
                current = await self._reread_quietly(batch.id, log)
                if current is not None and current.status is BatchStatus.FINALIZED:
                    return current, current.finalization_id == finalization_id

            attempt += 1
            transient = (
                error
                if isinstance(error, TransientStoreError)
                else TransientStoreError("get", batch_id=batch.id, cause=error)
            )
            decision = self._policy.decide(transient, attempt=attempt)
            if decision.is_terminal:
                outcome_unknown = current is None
                if outcome_unknown:
                    self._unacknowledged[batch.id] = finalization_id
                log.error(
                    "finalization_failed",
                    attempts=attempt,
                    write_outcome_unknown=outcome_unknown,
                )
                raise FinalizationFailedError(
                    batch_id=batch.id,
                    attempts=attempt,
                    last_error=error,
                    write_outcome_unknown=outcome_unknown,
                ) from error
            await self._sleep(decision.retry_delay_seconds)

    async def _existing_result(self, batch: Batch) -> FinalizationResult:
        summary: LedgerSummary = await self._call(
            self._ledger.summarize(batch.id), "summarize", batch.id
        )
        frozen = await self._call(
            self._ledger.is_frozen(batch.id), "is_frozen", batch.id
        )
        return FinalizationResult.from_frozen(batch, summary, ledger_frozen=frozen)

    async def _read(self, batch_id: str) -> Batch:
        batch = await self._call(self._store.get(batch_id), "get", batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    async def _reread_quietly(
        self,
        batch_id: str,
        log: structlog.BoundLogger,
    ) -> Batch | None:
        """Re-read after an ambiguous write; None if the read also failed."""
        try:
            return await self._read(batch_id)
        except TransientStoreError as e:
            log.warning("finalization_reread_failed", error=str(e))
            return None

    async def _thaw_after_failure(
        self,
        batch_id: str,
        log: structlog.BoundLogger,
    ) -> None:
        try:
            await self._call(self._ledger.thaw(batch_id), "thaw", batch_id)
        except TransientStoreError as e:
            # The original failure is what the caller sees
            log.error("ledger_thaw_failed", error=str(e))

    async def _call(self, awaitable: Awaitable[T], operation: str, batch_id: str) -> T:
        return await call_with_timeout(
            awaitable,
            self._config.store_timeout_seconds,
            operation,
            batch_id,
        )

    @asynccontextmanager
    async def _batch_lock(self, batch_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(batch_id)
        if lock is None:
            lock = self._locks[batch_id] = asyncio.Lock()
            self._lock_holders[batch_id] = 0
        self._lock_holders[batch_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[batch_id] -= 1
            if self._lock_holders[batch_id] == 0:
                del self._locks[batch_id]
                del self._lock_holders[batch_id]
