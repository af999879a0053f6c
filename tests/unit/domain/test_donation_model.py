"""Unit tests for donations, ledger summaries and result models."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from platesync.domain.models.batch import Batch, BatchStatus
from platesync.domain.models.batch_state import BatchState, FinalizationResult
from platesync.domain.models.count_report import CountReport
from platesync.domain.models.donation import Donation, DonationType, LedgerSummary

FINALIZED_AT = datetime(2025, 5, 5, 13, 0, tzinfo=timezone.utc)


def _finalized_batch() -> Batch:
    return (
        Batch(
            id="b-1",
            church_id="church-1",
            name="May 5, 2025",
            total_amount=Decimal("125.00"),
        )
        .with_primary_attestation("user-alice", "Alice Smith")
        .with_secondary_attestation("user-bob", "Bob Jones")
        .with_finalization("token-1", confirmed_by="user-bob", finalized_at=FINALIZED_AT)
    )


class TestDonation:
    """Tests for Donation validation."""

    def test_amount_quantized(self) -> None:
        donation = Donation(id="d-1", batch_id="b-1", amount=Decimal("20"))
        assert donation.amount == Decimal("20.00")
        assert donation.donation_type is DonationType.CASH

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_amount_rejected(self, amount: Decimal) -> None:
        with pytest.raises(ValueError, match="positive"):
            Donation(id="d-1", batch_id="b-1", amount=amount)


class TestLedgerSummary:
    """Tests for LedgerSummary.from_donations."""

    def test_breakdown_by_type(self) -> None:
        donations = [
            Donation(id="d-1", batch_id="b-1", amount=Decimal("100.00")),
            Donation(
                id="d-2",
                batch_id="b-1",
                amount=Decimal("20.00"),
                donation_type=DonationType.CHECK,
                check_number="1042",
            ),
            Donation(
                id="d-3",
                batch_id="b-1",
                amount=Decimal("5.00"),
                donation_type=DonationType.OTHER,
            ),
        ]

        summary = LedgerSummary.from_donations("b-1", donations)

        assert summary.total == Decimal("125.00")
        assert summary.cash_total == Decimal("100.00")
        assert summary.check_total == Decimal("20.00")
        assert summary.other_total == Decimal("5.00")
        assert summary.donation_count == 3

    def test_empty_ledger(self) -> None:
        summary = LedgerSummary.from_donations("b-1", [])
        assert summary.total == Decimal("0.00")
        assert summary.donation_count == 0


class TestResultModels:
    """Tests for BatchState, FinalizationResult and CountReport."""

    def test_batch_state_to_dict(self) -> None:
        state = BatchState.from_batch(_finalized_batch())
        data = state.to_dict()

        assert data["status"] == "FINALIZED"
        assert data["total_amount"] == "125.00"
        assert data["primary_attestor_name"] == "Alice Smith"
        assert data["secondary_attestor_name"] == "Bob Jones"
        assert data["finalized_at"] == FINALIZED_AT.isoformat()

    def test_finalization_result_report_available_when_frozen(self) -> None:
        summary = LedgerSummary(
            batch_id="b-1",
            total=Decimal("125.00"),
            cash_total=Decimal("100.00"),
            check_total=Decimal("25.00"),
            donation_count=2,
        )

        frozen = FinalizationResult.from_frozen(_finalized_batch(), summary, True)
        thawed = FinalizationResult.from_frozen(_finalized_batch(), summary, False)

        assert frozen.report_available is True
        assert thawed.report_available is False
        assert frozen.status is BatchStatus.FINALIZED
        assert frozen.confirmed_by == "user-bob"
        assert frozen.to_dict()["cash_total"] == "100.00"

    def test_count_report_template_variables(self) -> None:
        summary = LedgerSummary(
            batch_id="b-1",
            total=Decimal("125.00"),
            cash_total=Decimal("100.00"),
            check_total=Decimal("25.00"),
            donation_count=2,
        )

        report = CountReport.from_frozen(_finalized_batch(), summary)

        assert report.to_dict() == {
            "batch_id": "b-1",
            "batch_name": "May 5, 2025",
            "church_id": "church-1",
            "finalized_at": FINALIZED_AT.isoformat(),
            "total_amount": "125.00",
            "cash_amount": "100.00",
            "check_amount": "25.00",
            "donation_count": 2,
            "primary_attestor_name": "Alice Smith",
            "secondary_attestor_name": "Bob Jones",
        }
