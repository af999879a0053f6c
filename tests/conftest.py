"""
Pytest configuration and shared fixtures for PlateSync tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async collaborator mocking
- Use the in-memory stubs for workflow tests
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from collections.abc import Awaitable, Callable
from decimal import Decimal

import pytest

from platesync.application.services.attestation_engine import AttestationEngine
from platesync.application.services.finalization_coordinator import (
    FinalizationCoordinator,
)
from platesync.application.services.finalization_side_effects import (
    FinalizationSideEffectDispatcher,
)
from platesync.config.attestation_config import TEST_ATTESTATION_CONFIG
from platesync.domain.models.batch import Batch
from platesync.domain.models.donation import Donation, DonationType
from platesync.infrastructure.stubs import (
    BatchStoreStub,
    CountReportGeneratorStub,
    DonationLedgerStub,
    IdentityResolverStub,
    RecordingNotifierStub,
)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from platesync import __version__

    return __version__


@pytest.fixture
def batch_store() -> BatchStoreStub:
    return BatchStoreStub()


@pytest.fixture
def ledger(batch_store: BatchStoreStub) -> DonationLedgerStub:
    return DonationLedgerStub(batch_store)


@pytest.fixture
def identity_resolver() -> IdentityResolverStub:
    """Resolver knowing two verified users and one unverified user."""
    resolver = IdentityResolverStub()
    resolver.add_user("user-alice", "Alice Smith")
    resolver.add_user("user-bob", "Bob Jones")
    resolver.add_user("user-carol", "Carol White", verified=False)
    return resolver


@pytest.fixture
def notifier() -> RecordingNotifierStub:
    return RecordingNotifierStub()


@pytest.fixture
def report_generator() -> CountReportGeneratorStub:
    return CountReportGeneratorStub()


@pytest.fixture
def side_effects(
    notifier: RecordingNotifierStub,
    report_generator: CountReportGeneratorStub,
) -> FinalizationSideEffectDispatcher:
    return FinalizationSideEffectDispatcher(
        notifier=notifier,
        report_generator=report_generator,
        config=TEST_ATTESTATION_CONFIG,
    )


@pytest.fixture
def coordinator(
    batch_store: BatchStoreStub,
    ledger: DonationLedgerStub,
    side_effects: FinalizationSideEffectDispatcher,
) -> FinalizationCoordinator:
    return FinalizationCoordinator(
        batch_store=batch_store,
        ledger=ledger,
        side_effects=side_effects,
        config=TEST_ATTESTATION_CONFIG,
    )


@pytest.fixture
def engine(
    batch_store: BatchStoreStub,
    identity_resolver: IdentityResolverStub,
    coordinator: FinalizationCoordinator,
) -> AttestationEngine:
    return AttestationEngine(
        batch_store=batch_store,
        identity_resolver=identity_resolver,
        finalization_coordinator=coordinator,
        config=TEST_ATTESTATION_CONFIG,
    )


@pytest.fixture
def seed_batch(
    batch_store: BatchStoreStub,
    ledger: DonationLedgerStub,
) -> Callable[..., Awaitable[Batch]]:
    """Factory saving an OPEN batch and its donations.

    The stored total defaults to the sum of the donations. Even-indexed
    donations are CASH, odd-indexed ones CHECK.
    """

    async def _seed(
        batch_id: str = "batch-1",
        amounts: tuple[str, ...] = ("100.00", "25.00"),
        stored_total: str | None = None,
        church_id: str = "church-1",
    ) -> Batch:
        total = (
            Decimal(stored_total)
            if stored_total is not None
            else sum((Decimal(a) for a in amounts), Decimal("0"))
        )
        batch = Batch(
            id=batch_id,
            church_id=church_id,
            name="May 5, 2025",
            total_amount=total,
        )
        await batch_store.save(batch)
        for index, amount in enumerate(amounts):
            await ledger.add_donation(
                Donation(
                    id=f"{batch_id}-d{index}",
                    batch_id=batch_id,
                    amount=Decimal(amount),
                    donation_type=(
                        DonationType.CASH if index % 2 == 0 else DonationType.CHECK
                    ),
                )
            )
        return batch

    return _seed
