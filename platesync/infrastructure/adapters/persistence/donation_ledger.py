"""PostgreSQL donation ledger.

Donations live in the donations table. The freeze flag is the
ledger_frozen column of the owning batches row, so that freezing and
every donation write contend on the same row lock:

- freeze/thaw UPDATE the batches row
- add/update/remove first SELECT ... FOR UPDATE the batches row and
  reject the write if the ledger is frozen or the batch is FINALIZED

A write that started before a freeze commits first; a write that starts
after it sees the flag and fails with LedgerFrozenError.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from platesync.application.ports.donation_ledger import DonationLedgerProtocol
from platesync.domain.errors import BatchNotFoundError, LedgerFrozenError
from platesync.domain.models.batch import to_cents
from platesync.domain.models.donation import (
    Donation,
    DonationType,
    LedgerSummary,
)
from platesync.infrastructure.adapters.persistence.errors import (
    translate_store_errors,
)

logger = get_logger()

DONATION_COLUMNS = """
    id, batch_id, amount, donation_type, check_number, member_id, notes, created_at
"""


def _row_to_donation(row: Any) -> Donation:
    return Donation(
        id=row["id"],
        batch_id=row["batch_id"],
        amount=to_cents(row["amount"]),
        donation_type=DonationType(row["donation_type"]),
        check_number=row["check_number"],
        member_id=row["member_id"],
        notes=row["notes"],
        created_at=row["created_at"],
    )


def _donation_params(donation: Donation) -> dict[str, Any]:
    return {
        "id": donation.id,
        "batch_id": donation.batch_id,
        "amount": donation.amount,
        "donation_type": donation.donation_type.value,
        "check_number": donation.check_number,
        "member_id": donation.member_id,
        "notes": donation.notes,
        "created_at": donation.created_at,
    }


class PostgresDonationLedger(DonationLedgerProtocol):
    """DonationLedgerProtocol backed by the donations table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the ledger.

        Args:
            session_factory: SQLAlchemy async session factory.
        """
        self._session_factory = session_factory
        self._log = logger.bind(component="persistence", adapter="donation_ledger")

    async def sum_donations(self, batch_id: str) -> Decimal:
        with translate_store_errors("sum_donations", batch_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(
                        "SELECT COALESCE(SUM(amount), 0) FROM donations "
                        "WHERE batch_id = :batch_id"
                    ),
                    {"batch_id": batch_id},
                )
                total = result.scalar()
        return to_cents(total or 0)

    async def summarize(self, batch_id: str) -> LedgerSummary:
        with translate_store_errors("summarize", batch_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    text("""
                        SELECT donation_type,
                               COALESCE(SUM(amount), 0) AS subtotal,
                               COUNT(*) AS entries
                        FROM donations
                        WHERE batch_id = :batch_id
                        GROUP BY donation_type
                    """),
                    {"batch_id": batch_id},
                )
                rows = result.mappings().all()

        subtotals = {t: Decimal("0.00") for t in DonationType}
        count = 0
        for row in rows:
            subtotals[DonationType(row["donation_type"])] = to_cents(row["subtotal"])
            count += int(row["entries"])
        return LedgerSummary(
            batch_id=batch_id,
            total=to_cents(sum(subtotals.values(), Decimal("0.00"))),
            cash_total=subtotals[DonationType.CASH],
            check_total=subtotals[DonationType.CHECK],
            other_total=subtotals[DonationType.OTHER],
            donation_count=count,
        )

    async def list_donations(self, batch_id: str) -> list[Donation]:
        with translate_store_errors("list_donations", batch_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        SELECT {DONATION_COLUMNS} FROM donations
                        WHERE batch_id = :batch_id
                        ORDER BY created_at, id
                    """),
                    {"batch_id": batch_id},
                )
                rows = result.mappings().all()
        return [_row_to_donation(row) for row in rows]

    async def freeze(self, batch_id: str) -> None:
        with translate_store_errors("freeze", batch_id):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    text(
                        "UPDATE batches SET ledger_frozen = TRUE "
                        "WHERE id = :id RETURNING id"
                    ),
                    {"id": batch_id},
                )
                found = result.scalar() is not None
        if not found:
            raise BatchNotFoundError(batch_id)
        self._log.info("ledger_frozen", batch_id=batch_id)

    async def thaw(self, batch_id: str) -> None:
        """Make the ledger writable again.

        A FINALIZED batch's ledger stays frozen whatever the caller asks.
        """
        with translate_store_errors("thaw", batch_id):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    text(
                        "UPDATE batches SET ledger_frozen = FALSE "
                        "WHERE id = :id AND status <> 'FINALIZED' RETURNING id"
                    ),
                    {"id": batch_id},
                )
                thawed = result.scalar() is not None
        if thawed:
            self._log.info("ledger_thawed", batch_id=batch_id)
        else:
            self._log.warning("ledger_thaw_skipped", batch_id=batch_id)

    async def is_frozen(self, batch_id: str) -> bool:
        with translate_store_errors("is_frozen", batch_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    text("SELECT ledger_frozen FROM batches WHERE id = :id"),
                    {"id": batch_id},
                )
                frozen = result.scalar()
        if frozen is None:
            raise BatchNotFoundError(batch_id)
        return bool(frozen)

    async def add_donation(self, donation: Donation) -> Donation:
        with translate_store_errors("add_donation", donation.batch_id):
            try:
                async with self._session_factory() as session, session.begin():
                    await self._lock_writable(session, donation.batch_id, "add_donation")
                    await session.execute(
                        text(f"""
                            INSERT INTO donations ({DONATION_COLUMNS})
                            VALUES (:id, :batch_id, :amount, :donation_type,
                                    :check_number, :member_id, :notes, :created_at)
                        """),
                        _donation_params(donation),
                    )
            except IntegrityError as e:
                raise ValueError(f"Donation already exists: {donation.id}") from e
        return donation

    async def update_donation(self, donation: Donation) -> Donation:
        with translate_store_errors("update_donation", donation.batch_id):
            async with self._session_factory() as session, session.begin():
                await self._lock_writable(session, donation.batch_id, "update_donation")
                result = await session.execute(
                    text("""
                        UPDATE donations SET
                            amount = :amount,
                            donation_type = :donation_type,
                            check_number = :check_number,
                            member_id = :member_id,
                            notes = :notes
                        WHERE id = :id AND batch_id = :batch_id
                        RETURNING id
                    """),
                    _donation_params(donation),
                )
                if result.scalar() is None:
                    raise KeyError(f"Donation not found: {donation.id}")
        return donation

    async def remove_donation(self, batch_id: str, donation_id: str) -> None:
        with translate_store_errors("remove_donation", batch_id):
            async with self._session_factory() as session, session.begin():
                await self._lock_writable(session, batch_id, "remove_donation")
                result = await session.execute(
                    text(
                        "DELETE FROM donations "
                        "WHERE id = :id AND batch_id = :batch_id RETURNING id"
                    ),
                    {"id": donation_id, "batch_id": batch_id},
                )
                if result.scalar() is None:
                    raise KeyError(f"Donation not found: {donation_id}")

    @staticmethod
    async def _lock_writable(session: AsyncSession, batch_id: str, operation: str) -> None:
        """Lock the batch row and reject the write if the ledger is frozen."""
        result = await session.execute(
            text(
                "SELECT ledger_frozen, status FROM batches "
                "WHERE id = :id FOR UPDATE"
            ),
            {"id": batch_id},
        )
        row = result.mappings().first()
        if row is None:
            raise BatchNotFoundError(batch_id)
        if row["ledger_frozen"] or row["status"] == "FINALIZED":
            raise LedgerFrozenError(batch_id=batch_id, operation=operation)
