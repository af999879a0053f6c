"""PostgreSQL batch store.

Compare-and-set is a single conditional UPDATE:

    UPDATE batches SET ... WHERE id = :id AND status = :expected RETURNING ...

Zero rows back means either the batch does not exist or its status moved;
a follow-up SELECT tells the two apart.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from platesync.application.ports.batch_store import BatchStoreProtocol
from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    InvalidStateError,
)
from platesync.domain.models.batch import Batch, BatchStatus, to_cents
from platesync.infrastructure.adapters.persistence.errors import (
    translate_store_errors,
)

logger = get_logger()

BATCH_COLUMNS = """
    id, church_id, name, status, total_amount,
    primary_attestor_id, primary_attestor_name, primary_attested_at,
    secondary_attestor_id, secondary_attestor_name, secondary_attested_at,
    finalized_at, confirmed_by, finalization_id, created_at, updated_at
"""


def _row_to_batch(row: Any) -> Batch:
    return Batch(
        id=row["id"],
        church_id=row["church_id"],
        name=row["name"],
        status=BatchStatus(row["status"]),
        total_amount=to_cents(row["total_amount"]),
        primary_attestor_id=row["primary_attestor_id"],
        primary_attestor_name=row["primary_attestor_name"],
        primary_attested_at=row["primary_attested_at"],
        secondary_attestor_id=row["secondary_attestor_id"],
        secondary_attestor_name=row["secondary_attestor_name"],
        secondary_attested_at=row["secondary_attested_at"],
        finalized_at=row["finalized_at"],
        confirmed_by=row["confirmed_by"],
        finalization_id=row["finalization_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresBatchStore(BatchStoreProtocol):
    """BatchStoreProtocol backed by the batches table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store.

        Args:
            session_factory: SQLAlchemy async session factory.
        """
        self._session_factory = session_factory
        self._log = logger.bind(component="persistence", adapter="batch_store")

    async def save(self, batch: Batch) -> None:
        with translate_store_errors("save", batch.id):
            try:
                async with self._session_factory() as session, session.begin():
                    await session.execute(
                        text(f"""
                            INSERT INTO batches ({BATCH_COLUMNS})
                            VALUES (
                                :id, :church_id, :name, :status, :total_amount,
                                :primary_attestor_id, :primary_attestor_name,
                                :primary_attested_at, :secondary_attestor_id,
                                :secondary_attestor_name, :secondary_attested_at,
                                :finalized_at, :confirmed_by, :finalization_id,
                                :created_at, :updated_at
                            )
                        """),
                        self._params(batch),
                    )
            except IntegrityError as e:
                raise ValueError(f"Batch already exists: {batch.id}") from e

    async def get(self, batch_id: str) -> Batch | None:
        with translate_store_errors("get", batch_id):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"SELECT {BATCH_COLUMNS} FROM batches WHERE id = :id"),
                    {"id": batch_id},
                )
                row = result.mappings().first()
        return _row_to_batch(row) if row is not None else None

    async def list_by_status(
        self,
        church_id: str,
        status: BatchStatus,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Batch]:
        with translate_store_errors("list_by_status"):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        SELECT {BATCH_COLUMNS} FROM batches
                        WHERE church_id = :church_id AND status = :status
                        ORDER BY created_at DESC
                        LIMIT :limit OFFSET :offset
                    """),
                    {
                        "church_id": church_id,
                        "status": status.value,
                        "limit": limit,
                        "offset": offset,
                    },
                )
                rows = result.mappings().all()
        return [_row_to_batch(row) for row in rows]

    async def get_latest_finalized(self, church_id: str) -> Batch | None:
        with translate_store_errors("get_latest_finalized"):
            async with self._session_factory() as session:
                result = await session.execute(
                    text(f"""
                        SELECT {BATCH_COLUMNS} FROM batches
                        WHERE church_id = :church_id AND status = 'FINALIZED'
                        ORDER BY finalized_at DESC
                        LIMIT 1
                    """),
                    {"church_id": church_id},
                )
                row = result.mappings().first()
        return _row_to_batch(row) if row is not None else None

    async def compare_and_set(
        self,
        batch: Batch,
        expected_status: BatchStatus,
    ) -> Batch:
        """Write status, attestor fields and timestamps in one conditional UPDATE.

        The stored total is owned by the counting side and is not written
        here.

        Raises:
            BatchNotFoundError: If the batch doesn't exist.
            ConcurrentModificationError: If the stored status differs.
            TransientStoreError: If the database is unreachable.
        """
        params = self._params(batch)
        params["expected_status"] = expected_status.value
        with translate_store_errors("compare_and_set", batch.id):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    text(f"""
                        UPDATE batches SET
                            status = :status,
                            primary_attestor_id = :primary_attestor_id,
                            primary_attestor_name = :primary_attestor_name,
                            primary_attested_at = :primary_attested_at,
                            secondary_attestor_id = :secondary_attestor_id,
                            secondary_attestor_name = :secondary_attestor_name,
                            secondary_attested_at = :secondary_attested_at,
                            finalized_at = :finalized_at,
                            confirmed_by = :confirmed_by,
                            finalization_id = :finalization_id,
                            updated_at = :updated_at
                        WHERE id = :id AND status = :expected_status
                        RETURNING {BATCH_COLUMNS}
                    """),
                    params,
                )
                row = result.mappings().first()
                if row is not None:
                    return _row_to_batch(row)

                current = await session.execute(
                    text("SELECT status FROM batches WHERE id = :id"),
                    {"id": batch.id},
                )
                actual = current.scalar()

        if actual is None:
            raise BatchNotFoundError(batch.id)
        self._log.info(
            "compare_and_set_conflict",
            batch_id=batch.id,
            expected_status=expected_status.value,
            actual_status=actual,
        )
        raise ConcurrentModificationError(
            batch_id=batch.id,
            expected_status=expected_status,
            operation=f"transition to {batch.status.value}",
            actual_status=BatchStatus(actual),
        )

    async def update_total(self, batch_id: str, total_amount: Decimal) -> Batch:
        with translate_store_errors("update_total", batch_id):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    text(f"""
                        UPDATE batches
                        SET total_amount = :total_amount, updated_at = NOW()
                        WHERE id = :id AND status <> 'FINALIZED'
                        RETURNING {BATCH_COLUMNS}
                    """),
                    {"id": batch_id, "total_amount": to_cents(total_amount)},
                )
                row = result.mappings().first()
                if row is not None:
                    return _row_to_batch(row)
                exists = await session.execute(
                    text("SELECT 1 FROM batches WHERE id = :id"), {"id": batch_id}
                )
                found = exists.scalar() is not None

        if not found:
            raise BatchNotFoundError(batch_id)
        raise InvalidStateError(
            batch_id=batch_id,
            current_status=BatchStatus.FINALIZED,
            operation="update_total",
            allowed_statuses=[
                BatchStatus.OPEN,
                BatchStatus.PRIMARY_ATTESTED,
                BatchStatus.PENDING_FINALIZATION,
            ],
        )

    @staticmethod
    def _params(batch: Batch) -> dict[str, Any]:
        return {
            "id": batch.id,
            "church_id": batch.church_id,
            "name": batch.name,
            "status": batch.status.value,
            "total_amount": batch.total_amount,
            "primary_attestor_id": batch.primary_attestor_id,
            "primary_attestor_name": batch.primary_attestor_name,
            "primary_attested_at": batch.primary_attested_at,
            "secondary_attestor_id": batch.secondary_attestor_id,
            "secondary_attestor_name": batch.secondary_attestor_name,
            "secondary_attested_at": batch.secondary_attested_at,
            "finalized_at": batch.finalized_at,
            "confirmed_by": batch.confirmed_by,
            "finalization_id": batch.finalization_id,
            "created_at": batch.created_at,
            "updated_at": batch.updated_at,
        }
