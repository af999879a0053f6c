"""PostgreSQL persistence adapters."""

from platesync.infrastructure.adapters.persistence.batch_store import (
    PostgresBatchStore,
)
from platesync.infrastructure.adapters.persistence.donation_ledger import (
    PostgresDonationLedger,
)
from platesync.infrastructure.adapters.persistence.schema import (
    SCHEMA_STATEMENTS,
    create_schema,
)

__all__ = [
    "PostgresBatchStore",
    "PostgresDonationLedger",
    "SCHEMA_STATEMENTS",
    "create_schema",
]
