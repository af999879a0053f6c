"""
Integration test configuration with testcontainers.

Provides a session-scoped PostgreSQL 16 container and a per-test session
factory against it:
- The container is started once per test session (scope="session")
- The schema is created once, tables are truncated before every test
- When DATABASE_URL is set, that database is used instead of a container

Usage:
    @pytest.mark.integration
    async def test_example(session_factory: async_sessionmaker[AsyncSession]) -> None:
        store = PostgresBatchStore(session_factory)
        ...

Note: Docker must be running unless DATABASE_URL points at a database.
Tests depending on these fixtures are skipped when neither is available.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from platesync.bootstrap.database import to_asyncpg_url
from platesync.infrastructure.adapters.persistence import create_schema


@pytest.fixture(scope="session")
def postgres_async_url() -> Generator[str, None, None]:
    """Get an asyncpg PostgreSQL connection URL.

    testcontainers returns a psycopg2 URL by default, we convert it to
    asyncpg.

    Returns:
        postgresql+asyncpg:// URL string
    """
    configured = os.environ.get("DATABASE_URL")
    if configured:
        yield to_asyncpg_url(configured)
        return

    container = PostgresContainer("postgres:16-alpine")
    try:
        container.start()
    except Exception as e:  # Docker unreachable
        pytest.skip(f"PostgreSQL container unavailable: {e}")
    try:
        yield to_asyncpg_url(container.get_connection_url())
    finally:
        container.stop()


@pytest.fixture
async def session_factory(
    postgres_async_url: str,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Per-test session factory over a freshly truncated schema."""
    engine = create_async_engine(postgres_async_url, echo=False)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    await create_schema(factory)
    async with factory() as session, session.begin():
        await session.execute(text("TRUNCATE donations, batches"))

    yield factory

    await engine.dispose()
