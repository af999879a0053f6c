"""Error classification and retry decisions for the attestation workflow.

Errors are categorized to decide what happens next:

- SURFACE: Caller-correctable or terminal errors, returned immediately
  (bad input, wrong status, identity conflicts, exhausted budgets)
- REFETCH_AND_RETRY: Lost compare-and-set race; re-read state and retry
  at most the configured number of times
- RETRY: Transient store failures; retry with exponential backoff up to
  the attempt budget
- HALT: Ledger integrity violations; never retried, always surfaced
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum

from platesync.domain.errors import (
    BatchNotFoundError,
    ConcurrentModificationError,
    FinalizationFailedError,
    IdentityConflictError,
    IneligibleAttestorError,
    InvalidStateError,
    LedgerFrozenError,
    LedgerIntegrityError,
    TransientStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors encountered by the workflow."""

    # Caller must correct and resubmit
    INPUT = "input"
    STATE = "state"
    IDENTITY = "identity"

    # Lost a race - safe to re-read
    CONFLICT = "conflict"

    # May succeed on retry
    TRANSIENT = "transient"

    # Financial total cannot be trusted - halt
    INTEGRITY = "integrity"

    # Retry budget already spent
    TERMINAL = "terminal"

    UNKNOWN = "unknown"


class ErrorAction(Enum):
    """Action to take when an error occurs."""

    SURFACE = "surface"
    REFETCH_AND_RETRY = "refetch_and_retry"
    RETRY = "retry"
    HALT = "halt"


@dataclass(frozen=True)
class ErrorDecision:
    """Decision about how to handle an error.

    Attributes:
        action: The action to take
        category: The error category
        log_level: Level the caller should log the error at
        retry_delay_seconds: Delay before retry (if action is RETRY)
    """

    action: ErrorAction
    category: ErrorCategory
    log_level: str = "warning"
    retry_delay_seconds: float = 0.0

    @property
    def is_terminal(self) -> bool:
        """Check if this decision ends processing for this call."""
        return self.action in {ErrorAction.SURFACE, ErrorAction.HALT}


# Error type to category mapping
ERROR_CATEGORIES: dict[type[Exception], ErrorCategory] = {
    ValidationError: ErrorCategory.INPUT,
    InvalidStateError: ErrorCategory.STATE,
    BatchNotFoundError: ErrorCategory.STATE,
    LedgerFrozenError: ErrorCategory.STATE,
    IdentityConflictError: ErrorCategory.IDENTITY,
    IneligibleAttestorError: ErrorCategory.IDENTITY,
    ConcurrentModificationError: ErrorCategory.CONFLICT,
    TransientStoreError: ErrorCategory.TRANSIENT,
    asyncio.TimeoutError: ErrorCategory.TRANSIENT,
    LedgerIntegrityError: ErrorCategory.INTEGRITY,
    FinalizationFailedError: ErrorCategory.TERMINAL,
}


def categorize_error(error: Exception) -> ErrorCategory:
    """Determine the category of an error.

    Args:
        error: The exception to categorize

    Returns:
        ErrorCategory for the error
    """
    for error_type, category in ERROR_CATEGORIES.items():
        if isinstance(error, error_type):
            return category
    return ErrorCategory.UNKNOWN


class ErrorPolicy:
    """Decides what the workflow does with an error.

    Usage:
        policy = ErrorPolicy(max_attempts=4, base_delay_seconds=0.2)

        attempt = 0
        while True:
            attempt += 1
            try:
                return await write()
            except TransientStoreError as e:
                decision = policy.decide(e, attempt=attempt)
                if decision.is_terminal:
                    raise
                await asyncio.sleep(decision.retry_delay_seconds)
    """

    SURFACE_CATEGORIES: set[ErrorCategory] = {
        ErrorCategory.INPUT,
        ErrorCategory.STATE,
        ErrorCategory.IDENTITY,
        ErrorCategory.TERMINAL,
        ErrorCategory.UNKNOWN,
    }

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay_seconds: float = 0.2,
        max_delay_seconds: float = 5.0,
        conflict_retry_limit: int = 1,
        jitter: bool = True,
    ) -> None:
        """Initialize the error policy.

        Args:
            max_attempts: Maximum attempts for transient errors
            base_delay_seconds: Delay before the first retry
            max_delay_seconds: Maximum delay cap
            conflict_retry_limit: Retries allowed after a lost race
            jitter: Randomize delays within [delay / 2, delay]
        """
        self._max_attempts = max_attempts
        self._base_delay = base_delay_seconds
        self._max_delay = max_delay_seconds
        self._conflict_retry_limit = conflict_retry_limit
        self._jitter = jitter

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def decide(self, error: Exception, attempt: int = 1) -> ErrorDecision:
        """Decide the action for an error.

        Args:
            error: The exception that occurred
            attempt: Current attempt number (1-based)

        Returns:
            ErrorDecision with action and details
        """
        category = categorize_error(error)

        logger.debug(
            "Handling error: category=%s, attempt=%d/%d, error=%s",
            category.value,
            attempt,
            self._max_attempts,
            error,
        )

        if category is ErrorCategory.INTEGRITY:
            return ErrorDecision(
                action=ErrorAction.HALT,
                category=category,
                log_level="critical",
            )

        if category in self.SURFACE_CATEGORIES:
            return ErrorDecision(
                action=ErrorAction.SURFACE,
                category=category,
                log_level="error" if category is ErrorCategory.UNKNOWN else "warning",
            )

        if category is ErrorCategory.CONFLICT:
            if attempt <= self._conflict_retry_limit:
                return ErrorDecision(
                    action=ErrorAction.REFETCH_AND_RETRY,
                    category=category,
                    log_level="info",
                )
            return ErrorDecision(action=ErrorAction.SURFACE, category=category)

        # TRANSIENT
        if attempt < self._max_attempts:
            return ErrorDecision(
                action=ErrorAction.RETRY,
                category=category,
                retry_delay_seconds=self.backoff_delay(attempt),
            )
        logger.error(
            "Max retries exhausted: %s (attempts=%d, category=%s)",
            error,
            attempt,
            category.value,
        )
        return ErrorDecision(
            action=ErrorAction.SURFACE,
            category=category,
            log_level="error",
        )

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff delay before retry number `attempt`.

        The ceiling doubles per attempt (base, 2*base, 4*base, ...) and is
        capped at max_delay_seconds. With jitter the delay is drawn from
        [ceiling / 2, ceiling].

        Args:
            attempt: Attempt that just failed (1-based)

        Returns:
            Delay in seconds
        """
        ceiling = min(self._base_delay * (2 ** max(attempt - 1, 0)), self._max_delay)
        if not self._jitter or ceiling <= 0:
            return ceiling
        return random.uniform(ceiling / 2, ceiling)
