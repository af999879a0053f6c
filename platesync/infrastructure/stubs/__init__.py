"""In-memory stub adapters for development and testing."""

from platesync.infrastructure.stubs.batch_store_stub import BatchStoreStub
from platesync.infrastructure.stubs.donation_ledger_stub import DonationLedgerStub
from platesync.infrastructure.stubs.finalization_side_effects_stub import (
    CountReportGeneratorStub,
    RecordingNotifierStub,
)
from platesync.infrastructure.stubs.identity_resolver_stub import (
    IdentityResolverStub,
)

__all__ = [
    "BatchStoreStub",
    "CountReportGeneratorStub",
    "DonationLedgerStub",
    "IdentityResolverStub",
    "RecordingNotifierStub",
]
