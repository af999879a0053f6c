"""Dependency wiring for the attestation workflow."""

from platesync.bootstrap.attestation import (
    get_attestation_config,
    get_attestation_engine,
    get_batch_store,
    get_donation_ledger,
    get_finalization_coordinator,
    get_identity_resolver,
    reset_attestation_dependencies,
)

__all__ = [
    "get_attestation_config",
    "get_attestation_engine",
    "get_batch_store",
    "get_donation_ledger",
    "get_finalization_coordinator",
    "get_identity_resolver",
    "reset_attestation_dependencies",
]
