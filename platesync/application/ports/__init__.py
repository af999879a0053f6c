"""Ports (interfaces) consumed by the attestation workflow."""

from platesync.application.ports.batch_store import BatchStoreProtocol
from platesync.application.ports.donation_ledger import DonationLedgerProtocol
from platesync.application.ports.finalization_side_effects import (
    CountReportGeneratorProtocol,
    FinalizationNotifierProtocol,
)
from platesync.application.ports.identity_resolver import IdentityResolverProtocol

__all__ = [
    "BatchStoreProtocol",
    "CountReportGeneratorProtocol",
    "DonationLedgerProtocol",
    "FinalizationNotifierProtocol",
    "IdentityResolverProtocol",
]
