"""Integration tests for the PostgreSQL batch store and donation ledger.

Run against a real PostgreSQL (testcontainers or DATABASE_URL) to check
the conditional writes that the in-memory stubs only imitate.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from platesync.application.services.attestation_engine import AttestationEngine
from platesync.application.services.finalization_coordinator import (
    FinalizationCoordinator,
)
from platesync.application.services.finalization_side_effects import (
    FinalizationSideEffectDispatcher,
)
from platesync.config.attestation_config import TEST_ATTESTATION_CONFIG
from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    InvalidStateError,
    LedgerFrozenError,
    LedgerIntegrityError,
)
from platesync.domain.models.batch import Batch, BatchStatus
from platesync.domain.models.donation import Donation, DonationType
from platesync.infrastructure.adapters.persistence import (
    PostgresBatchStore,
    PostgresDonationLedger,
)
from platesync.infrastructure.stubs import (
    CountReportGeneratorStub,
    IdentityResolverStub,
    RecordingNotifierStub,
)

pytestmark = pytest.mark.integration

SessionFactory = async_sessionmaker[AsyncSession]


@pytest.fixture
def pg_store(session_factory: SessionFactory) -> PostgresBatchStore:
    return PostgresBatchStore(session_factory)


@pytest.fixture
def pg_ledger(session_factory: SessionFactory) -> PostgresDonationLedger:
    return PostgresDonationLedger(session_factory)


async def _seed(
    store: PostgresBatchStore,
    ledger: PostgresDonationLedger,
    batch_id: str = "batch-1",
    amounts: tuple[str, ...] = ("100.00", "25.00"),
    stored_total: str | None = None,
) -> Batch:
    total = Decimal(stored_total) if stored_total else sum(map(Decimal, amounts))
    batch = Batch(id=batch_id, church_id="church-1", name="May 5, 2025", total_amount=total)
    await store.save(batch)
    for index, amount in enumerate(amounts):
        await ledger.add_donation(
            Donation(
                id=f"{batch_id}-d{index}",
                batch_id=batch_id,
                amount=Decimal(amount),
                donation_type=DonationType.CASH if index % 2 == 0 else DonationType.CHECK,
            )
        )
    return batch


class TestPostgresBatchStore:
    async def test_save_and_get_round_trip(self, pg_store: PostgresBatchStore) -> None:
        batch = Batch(id="batch-1", church_id="church-1", total_amount=Decimal("12.5"))
        await pg_store.save(batch)

        stored = await pg_store.get("batch-1")

        assert stored is not None
        assert stored.status is BatchStatus.OPEN
        assert stored.total_amount == Decimal("12.50")
        assert await pg_store.get("missing") is None

    async def test_duplicate_save_rejected(self, pg_store: PostgresBatchStore) -> None:
        await pg_store.save(Batch(id="batch-1"))

        with pytest.raises(ValueError):
            await pg_store.save(Batch(id="batch-1"))

    async def test_compare_and_set_applies_transition(
        self, pg_store: PostgresBatchStore
    ) -> None:
        batch = Batch(id="batch-1")
        await pg_store.save(batch)

        updated = await pg_store.compare_and_set(
            batch.with_primary_attestation("user-alice", "Alice Smith"),
            BatchStatus.OPEN,
        )

        assert updated.status is BatchStatus.PRIMARY_ATTESTED
        assert updated.primary_attestor_name == "Alice Smith"
        stored = await pg_store.get("batch-1")
        assert stored == updated

    async def test_compare_and_set_stale_status_conflicts(
        self, pg_store: PostgresBatchStore
    ) -> None:
        batch = Batch(id="batch-1")
        await pg_store.save(batch)
        await pg_store.compare_and_set(
            batch.with_primary_attestation("user-alice", "Alice Smith"),
            BatchStatus.OPEN,
        )

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await pg_store.compare_and_set(
                batch.with_primary_attestation("user-bob", "Bob Jones"),
                BatchStatus.OPEN,
            )

        assert exc_info.value.actual_status is BatchStatus.PRIMARY_ATTESTED
        stored = await pg_store.get("batch-1")
        assert stored.primary_attestor_id == "user-alice"

    async def test_compare_and_set_missing_batch(
        self, pg_store: PostgresBatchStore
    ) -> None:
        ghost = Batch(id="ghost").with_primary_attestation("user-alice", "Alice")

        with pytest.raises(BatchNotFoundError):
            await pg_store.compare_and_set(ghost, BatchStatus.OPEN)

    async def test_racing_writers_single_winner(
        self, pg_store: PostgresBatchStore
    ) -> None:
        batch = Batch(id="batch-1")
        await pg_store.save(batch)

        results = await asyncio.gather(
            pg_store.compare_and_set(
                batch.with_primary_attestation("user-alice", "Alice Smith"),
                BatchStatus.OPEN,
            ),
            pg_store.compare_and_set(
                batch.with_primary_attestation("user-bob", "Bob Jones"),
                BatchStatus.OPEN,
            ),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, Batch)) == 1
        assert sum(1 for r in results if isinstance(r, ConcurrentModificationError)) == 1

    async def test_update_total_refused_after_finalization(
        self,
        pg_store: PostgresBatchStore,
    ) -> None:
        batch = Batch(id="batch-1")
        await pg_store.save(batch)
        await pg_store.update_total("batch-1", Decimal("40.00"))
        primary = await pg_store.compare_and_set(
            batch.with_primary_attestation("user-alice", "Alice"), BatchStatus.OPEN
        )
        secondary = await pg_store.compare_and_set(
            primary.with_secondary_attestation("user-bob", "Bob"),
            BatchStatus.PRIMARY_ATTESTED,
        )
        final = await pg_store.compare_and_set(
            secondary.with_finalization("token-1"), BatchStatus.PENDING_FINALIZATION
        )

        assert final.total_amount == Decimal("40.00")
        assert final.finalization_id == "token-1"
        with pytest.raises(InvalidStateError):
            await pg_store.update_total("batch-1", Decimal("41.00"))

    async def test_list_by_status_and_latest_finalized(
        self,
        pg_store: PostgresBatchStore,
    ) -> None:
        for batch_id in ("batch-a", "batch-b"):
            await pg_store.save(Batch(id=batch_id, church_id="church-1"))

        open_batches = await pg_store.list_by_status("church-1", BatchStatus.OPEN)

        assert {b.id for b in open_batches} == {"batch-a", "batch-b"}
        assert await pg_store.list_by_status("church-2", BatchStatus.OPEN) == []
        assert await pg_store.get_latest_finalized("church-1") is None


class TestPostgresDonationLedger:
    async def test_summarize_groups_by_type(
        self,
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> None:
        await _seed(pg_store, pg_ledger, amounts=("100.00", "25.00", "0.50"))

        summary = await pg_ledger.summarize("batch-1")

        assert summary.total == Decimal("125.50")
        assert summary.cash_total == Decimal("100.50")
        assert summary.check_total == Decimal("25.00")
        assert summary.donation_count == 3
        assert await pg_ledger.sum_donations("batch-1") == Decimal("125.50")

    async def test_empty_ledger_sums_to_zero(
        self,
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> None:
        await pg_store.save(Batch(id="batch-1"))

        assert await pg_ledger.sum_donations("batch-1") == Decimal("0.00")

    async def test_frozen_ledger_rejects_writes(
        self,
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> None:
        await _seed(pg_store, pg_ledger)
        await pg_ledger.freeze("batch-1")

        assert await pg_ledger.is_frozen("batch-1") is True
        with pytest.raises(LedgerFrozenError):
            await pg_ledger.add_donation(
                Donation(id="late", batch_id="batch-1", amount=Decimal("1.00"))
            )
        with pytest.raises(LedgerFrozenError):
            await pg_ledger.remove_donation("batch-1", "batch-1-d0")

        await pg_ledger.thaw("batch-1")

        assert await pg_ledger.is_frozen("batch-1") is False
        await pg_ledger.remove_donation("batch-1", "batch-1-d0")
        assert await pg_ledger.sum_donations("batch-1") == Decimal("25.00")

    async def test_freeze_missing_batch(self, pg_ledger: PostgresDonationLedger) -> None:
        with pytest.raises(BatchNotFoundError):
            await pg_ledger.freeze("missing")


class TestPostgresAttestationWorkflow:
    """The full workflow on the PostgreSQL adapters."""

    @pytest.fixture
    def pg_engine(
        self,
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> tuple[AttestationEngine, FinalizationSideEffectDispatcher, RecordingNotifierStub]:
        resolver = IdentityResolverStub()
        resolver.add_user("user-alice", "Alice Smith")
        resolver.add_user("user-bob", "Bob Jones")
        notifier = RecordingNotifierStub()
        side_effects = FinalizationSideEffectDispatcher(
            notifier=notifier,
            report_generator=CountReportGeneratorStub(),
            config=TEST_ATTESTATION_CONFIG,
        )
        coordinator = FinalizationCoordinator(
            batch_store=pg_store,
            ledger=pg_ledger,
            side_effects=side_effects,
            config=TEST_ATTESTATION_CONFIG,
        )
        engine = AttestationEngine(
            batch_store=pg_store,
            identity_resolver=resolver,
            finalization_coordinator=coordinator,
            config=TEST_ATTESTATION_CONFIG,
        )
        return engine, side_effects, notifier

    async def test_finalized_batch_is_frozen_for_good(
        self,
        pg_engine: tuple[AttestationEngine, FinalizationSideEffectDispatcher, RecordingNotifierStub],
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> None:
        engine, side_effects, notifier = pg_engine
        await _seed(pg_store, pg_ledger)
        await engine.attest_primary("batch-1", "user-alice", "Alice Smith")
        await engine.attest_secondary("batch-1", "user-bob", "Bob Jones")

        first = await engine.confirm_finalization("batch-1")
        second = await engine.confirm_finalization("batch-1")
        await side_effects.drain()

        assert first == second
        assert first.total_amount == Decimal("125.00")
        assert notifier.notified == ["batch-1"]

        # Thaw is refused once the batch row says FINALIZED
        await pg_ledger.thaw("batch-1")
        assert await pg_ledger.is_frozen("batch-1") is True
        with pytest.raises(LedgerFrozenError):
            await pg_ledger.add_donation(
                Donation(id="late", batch_id="batch-1", amount=Decimal("5.00"))
            )

    async def test_integrity_failure_leaves_batch_pending(
        self,
        pg_engine: tuple[AttestationEngine, FinalizationSideEffectDispatcher, RecordingNotifierStub],
        pg_store: PostgresBatchStore,
        pg_ledger: PostgresDonationLedger,
    ) -> None:
        engine, _, notifier = pg_engine
        await _seed(pg_store, pg_ledger, amounts=("50.00", "2.00"), stored_total="50.00")
        await engine.attest_primary("batch-1", "user-alice", "Alice Smith")
        await engine.attest_secondary("batch-1", "user-bob", "Bob Jones")

        with pytest.raises(LedgerIntegrityError):
            await engine.confirm_finalization("batch-1")

        stored = await pg_store.get("batch-1")
        assert stored.status is BatchStatus.PENDING_FINALIZATION
        assert await pg_ledger.is_frozen("batch-1") is False
        assert notifier.notified == []
