"""Unit tests for the workflow error hierarchy."""

from decimal import Decimal

import pytest

from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    FinalizationFailedError,
    IdentityConflictError,
    IneligibleAttestorError,
    InvalidStateError,
    LedgerFrozenError,
    LedgerIntegrityError,
    PlateSyncError,
    TransientStoreError,
    ValidationError,
    WorkflowError,
)
from platesync.domain.models.batch import BatchStatus


@pytest.mark.parametrize(
    "error",
    [
        ValidationError("signature_name", "must be non-empty"),
        InvalidStateError("b-1", BatchStatus.OPEN, "attest_secondary"),
        BatchNotFoundError("b-1"),
        IdentityConflictError("b-1", "user-alice"),
        IneligibleAttestorError("b-1", "user-carol", "ineligible"),
        ConcurrentModificationError("b-1", BatchStatus.OPEN, "attest_primary"),
        LedgerIntegrityError("b-1", Decimal("50.00"), Decimal("52.00")),
        LedgerFrozenError("b-1", "add_donation"),
        TransientStoreError("get", batch_id="b-1"),
        FinalizationFailedError("b-1", attempts=3),
    ],
)
def test_all_errors_share_the_workflow_base(error: Exception) -> None:
    assert isinstance(error, WorkflowError)
    assert isinstance(error, PlateSyncError)


def test_invalid_state_message_names_status() -> None:
    error = InvalidStateError(
        "b-1",
        BatchStatus.PRIMARY_ATTESTED,
        "attest_primary",
        allowed_statuses=[BatchStatus.OPEN],
    )

    assert "b-1" in str(error)
    assert "PRIMARY_ATTESTED" in str(error)
    assert error.allowed_statuses == [BatchStatus.OPEN]


def test_ledger_integrity_discrepancy() -> None:
    error = LedgerIntegrityError("b-1", Decimal("50.00"), Decimal("52.00"))

    assert error.discrepancy == Decimal("-2.00")
    assert "52.00" in str(error)
    assert "50.00" in str(error)


def test_concurrent_modification_records_actual_status() -> None:
    error = ConcurrentModificationError(
        "b-1",
        expected_status=BatchStatus.PRIMARY_ATTESTED,
        operation="attest_secondary",
        actual_status=BatchStatus.PENDING_FINALIZATION,
    )

    assert error.actual_status is BatchStatus.PENDING_FINALIZATION
    assert "PENDING_FINALIZATION" in str(error)


def test_transient_store_error_keeps_cause() -> None:
    cause = ConnectionResetError("reset by peer")
    error = TransientStoreError("compare_and_set", batch_id="b-1", cause=cause)

    assert error.cause is cause
    assert "compare_and_set" in str(error)
    assert "reset by peer" in str(error)


def test_finalization_failed_mentions_pending_status() -> None:
    last = TransientStoreError("compare_and_set", batch_id="b-1")
    error = FinalizationFailedError("b-1", attempts=4, last_error=last)

    assert error.attempts == 4
    assert error.last_error is last
    assert "PENDING_FINALIZATION" in str(error)
    assert error.write_outcome_unknown is False


def test_finalization_failed_with_unknown_outcome() -> None:
    error = FinalizationFailedError("b-1", attempts=1, write_outcome_unknown=True)

    assert error.write_outcome_unknown is True
    assert "may already be FINALIZED" in str(error)
