"""Domain models for PlateSync."""

from platesync.domain.models.attestor import AttestorIdentity
from platesync.domain.models.batch import (
    BATCH_TRANSITIONS,
    Batch,
    BatchStatus,
    to_cents,
)
from platesync.domain.models.batch_state import BatchState, FinalizationResult
from platesync.domain.models.count_report import CountReport
from platesync.domain.models.donation import Donation, DonationType, LedgerSummary

__all__ = [
    "AttestorIdentity",
    "BATCH_TRANSITIONS",
    "Batch",
    "BatchState",
    "BatchStatus",
    "CountReport",
    "Donation",
    "DonationType",
    "FinalizationResult",
    "LedgerSummary",
    "to_cents",
]
