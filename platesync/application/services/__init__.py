"""Application services for the attestation workflow."""

from platesync.application.services.attestation_engine import AttestationEngine
from platesync.application.services.error_policy import (
    ErrorAction,
    ErrorCategory,
    ErrorDecision,
    ErrorPolicy,
    categorize_error,
)
from platesync.application.services.finalization_coordinator import (
    FinalizationCoordinator,
)
from platesync.application.services.finalization_side_effects import (
    FinalizationSideEffectDispatcher,
)

__all__ = [
    "AttestationEngine",
    "ErrorAction",
    "ErrorCategory",
    "ErrorDecision",
    "ErrorPolicy",
    "FinalizationCoordinator",
    "FinalizationSideEffectDispatcher",
    "categorize_error",
]
