"""Translation of database driver errors into domain errors."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from platesync.domain.errors import TransientStoreError


@contextmanager
def translate_store_errors(operation: str, batch_id: str | None = None) -> Iterator[None]:
    """Map connection-level failures to TransientStoreError.

    Lost connections, pool exhaustion and refused connects may pass on
    retry. Everything else (constraint violations, SQL errors) propagates
    unchanged.
    """
    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as e:
        raise TransientStoreError(operation, batch_id=batch_id, cause=e) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise TransientStoreError(operation, batch_id=batch_id, cause=e) from e
        raise
