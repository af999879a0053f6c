"""Domain errors for PlateSync.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from PlateSyncError.
"""

from platesync.domain.errors.attestation import (
    IdentityConflictError,
    IneligibleAttestorError,
    ValidationError,
)
from platesync.domain.errors.concurrent_modification import (
    ConcurrentModificationError,
)
from platesync.domain.errors.finalization import FinalizationFailedError
from platesync.domain.errors.ledger import LedgerFrozenError, LedgerIntegrityError
from platesync.domain.errors.state import BatchNotFoundError, InvalidStateError
from platesync.domain.errors.store import TransientStoreError
from platesync.domain.errors.workflow import WorkflowError
from platesync.domain.exceptions import PlateSyncError

__all__ = [
    "BatchNotFoundError",
    "ConcurrentModificationError",
    "FinalizationFailedError",
    "IdentityConflictError",
    "IneligibleAttestorError",
    "InvalidStateError",
    "LedgerFrozenError",
    "LedgerIntegrityError",
    "PlateSyncError",
    "TransientStoreError",
    "ValidationError",
    "WorkflowError",
]
