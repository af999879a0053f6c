"""Unit tests for bounded store calls."""

import asyncio

import pytest

from platesync.application.services.store_calls import call_with_timeout
from platesync.domain.errors import TransientStoreError


async def test_returns_result_within_timeout() -> None:
    async def fetch() -> str:
        return "batch"

    assert await call_with_timeout(fetch(), 1.0, "get", "b-1") == "batch"


async def test_timeout_becomes_transient_store_error() -> None:
    async def hang() -> None:
        await asyncio.sleep(10)

    with pytest.raises(TransientStoreError) as exc_info:
        await call_with_timeout(hang(), 0.01, "compare_and_set", "b-1")

    assert exc_info.value.operation == "compare_and_set"
    assert exc_info.value.batch_id == "b-1"
    assert isinstance(exc_info.value.cause, asyncio.TimeoutError)


async def test_other_errors_propagate_unchanged() -> None:
    async def broken() -> None:
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await call_with_timeout(broken(), 1.0, "get")
