"""PostgreSQL schema for the batch store and donation ledger.

The DDL is idempotent (IF NOT EXISTS) and is applied one statement at a
time, since asyncpg will not run several statements in one execute.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from platesync.infrastructure.observability.logging import get_logger_for_component

logger = get_logger_for_component("schema", component="persistence")

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS batches (
        id TEXT PRIMARY KEY,
        church_id TEXT,
        name TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'OPEN'
            CHECK (status IN ('OPEN', 'PRIMARY_ATTESTED',
                              'PENDING_FINALIZATION', 'FINALIZED')),
        total_amount NUMERIC(12, 2) NOT NULL DEFAULT 0,
        primary_attestor_id TEXT,
        primary_attestor_name TEXT,
        primary_attested_at TIMESTAMPTZ,
        secondary_attestor_id TEXT,
        secondary_attestor_name TEXT,
        secondary_attested_at TIMESTAMPTZ,
        finalized_at TIMESTAMPTZ,
        confirmed_by TEXT,
        finalization_id TEXT,
        ledger_frozen BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT batches_distinct_attestors CHECK (
            secondary_attestor_id IS NULL
            OR secondary_attestor_id <> primary_attestor_id
        )
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_batches_church_status
        ON batches (church_id, status, created_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS donations (
        id TEXT PRIMARY KEY,
        batch_id TEXT NOT NULL REFERENCES batches (id),
        amount NUMERIC(12, 2) NOT NULL CHECK (amount > 0),
        donation_type TEXT NOT NULL DEFAULT 'CASH'
            CHECK (donation_type IN ('CASH', 'CHECK', 'OTHER')),
        check_number TEXT,
        member_id TEXT,
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_donations_batch_id ON donations (batch_id)
    """,
)


async def create_schema(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create the tables and indexes if they do not exist."""
    async with session_factory() as session, session.begin():
        for statement in SCHEMA_STATEMENTS:
            await session.execute(text(statement))
    logger.info("schema_ready", statements=len(SCHEMA_STATEMENTS))
