"""Bounded store calls.

Every read or write against the batch store, the donation ledger or the
identity resolver may suspend on I/O. Each one is bounded by the
configured timeout; expiry surfaces as TransientStoreError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from platesync.domain.errors import TransientStoreError

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    operation: str,
    batch_id: str | None = None,
) -> T:
    """Await a store call, converting a timeout into TransientStoreError.

    Args:
        awaitable: The store call.
        timeout_seconds: Upper bound on the call.
        operation: Store operation name, for the error.
        batch_id: Batch involved, for the error.

    Returns:
        Whatever the store call returns.

    Raises:
        TransientStoreError: If the call does not finish in time.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise TransientStoreError(operation, batch_id=batch_id, cause=e) from e
