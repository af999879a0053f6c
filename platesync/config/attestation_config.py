"""Attestation workflow configuration.

Timeouts and retry budgets for the attestation engine and the
finalization coordinator, with environment variable overrides for
production tuning.

Environment Variables (Store):
- ATTESTATION_STORE_TIMEOUT_SECONDS: Per-call store timeout (default: 5.0)
- ATTESTATION_CONCURRENT_RETRY_LIMIT: Re-read-and-retry budget after a
  lost compare-and-set (default: 1)

Environment Variables (Finalization):
- FINALIZATION_MAX_ATTEMPTS: Write attempts before FinalizationFailed (default: 4)
- FINALIZATION_BACKOFF_BASE_SECONDS: First retry delay (default: 0.2)
- FINALIZATION_BACKOFF_MAX_SECONDS: Retry delay cap (default: 5.0)

Environment Variables (Side effects):
- SIDE_EFFECT_MAX_ATTEMPTS: Attempts per report/notification (default: 3)
- SIDE_EFFECT_BACKOFF_BASE_SECONDS: First retry delay (default: 1.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed float value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class AttestationConfig:
    """Configuration for the attestation workflow.

    Attributes:
        store_timeout_seconds: Bound on every store, ledger and resolver
            call. Expiry surfaces as TransientStoreError.
        concurrent_retry_limit: How many times a transition re-reads and
            retries after a spurious compare-and-set conflict.
        finalization_max_attempts: Write attempts for the terminal
            transition before FinalizationFailedError.
        finalization_backoff_base_seconds: Delay before the first
            finalization retry; doubles per attempt.
        finalization_backoff_max_seconds: Cap on any single retry delay.
        side_effect_max_attempts: Attempts per report/notification.
        side_effect_backoff_base_seconds: Delay before the first
            side-effect retry; doubles per attempt.
    """

    store_timeout_seconds: float = 5.0
    concurrent_retry_limit: int = 1
    finalization_max_attempts: int = 4
    finalization_backoff_base_seconds: float = 0.2
    finalization_backoff_max_seconds: float = 5.0
    side_effect_max_attempts: int = 3
    side_effect_backoff_base_seconds: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.store_timeout_seconds <= 0:
            raise ValueError(
                f"store_timeout_seconds must be positive, got {self.store_timeout_seconds}"
            )
        if self.concurrent_retry_limit < 0:
            raise ValueError(
                "concurrent_retry_limit must be non-negative, "
                f"got {self.concurrent_retry_limit}"
            )
        if self.finalization_max_attempts < 1:
            raise ValueError(
                "finalization_max_attempts must be at least 1, "
                f"got {self.finalization_max_attempts}"
            )
        if self.finalization_backoff_base_seconds < 0:
            raise ValueError(
                "finalization_backoff_base_seconds must be non-negative, "
                f"got {self.finalization_backoff_base_seconds}"
            )
        if self.finalization_backoff_max_seconds < self.finalization_backoff_base_seconds:
            raise ValueError(
                f"finalization_backoff_max_seconds ({self.finalization_backoff_max_seconds}) "
                "must be at least finalization_backoff_base_seconds "
                f"({self.finalization_backoff_base_seconds})"
            )
        if self.side_effect_max_attempts < 1:
            raise ValueError(
                "side_effect_max_attempts must be at least 1, "
                f"got {self.side_effect_max_attempts}"
            )
        if self.side_effect_backoff_base_seconds < 0:
            raise ValueError(
                "side_effect_backoff_base_seconds must be non-negative, "
                f"got {self.side_effect_backoff_base_seconds}"
            )

    @classmethod
    def from_environment(cls) -> AttestationConfig:
        """Create config from environment variables with defaults."""
        return cls(
            store_timeout_seconds=_get_float_env(
                "ATTESTATION_STORE_TIMEOUT_SECONDS", 5.0
            ),
            concurrent_retry_limit=_get_int_env(
                "ATTESTATION_CONCURRENT_RETRY_LIMIT", 1
            ),
            finalization_max_attempts=_get_int_env("FINALIZATION_MAX_ATTEMPTS", 4),
            finalization_backoff_base_seconds=_get_float_env(
                "FINALIZATION_BACKOFF_BASE_SECONDS", 0.2
            ),
            finalization_backoff_max_seconds=_get_float_env(
                "FINALIZATION_BACKOFF_MAX_SECONDS", 5.0
            ),
            side_effect_max_attempts=_get_int_env("SIDE_EFFECT_MAX_ATTEMPTS", 3),
            side_effect_backoff_base_seconds=_get_float_env(
                "SIDE_EFFECT_BACKOFF_BASE_SECONDS", 1.0
            ),
        )


# Default configuration for production
DEFAULT_ATTESTATION_CONFIG = AttestationConfig()

# Test configuration: no waiting between retries
TEST_ATTESTATION_CONFIG = AttestationConfig(
    store_timeout_seconds=1.0,
    finalization_max_attempts=3,
    finalization_backoff_base_seconds=0.0,
    finalization_backoff_max_seconds=0.0,
    side_effect_max_attempts=2,
    side_effect_backoff_base_seconds=0.0,
)
