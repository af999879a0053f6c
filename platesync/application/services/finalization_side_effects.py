"""Finalization side-effect dispatcher.

Runs the follow-ups of a successful finalization: count report
generation and the finalized notification.

Developer Golden Rules:
1. Fire-and-forget - never block or fail the finalize call
2. Each follow-up retries independently with bounded backoff
3. Graceful degradation - log failures, don't raise
4. Never roll back finalization because a follow-up failed
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from platesync.application.services.error_policy import ErrorPolicy
from platesync.config.attestation_config import (
    DEFAULT_ATTESTATION_CONFIG,
    AttestationConfig,
)
from platesync.domain.models.count_report import CountReport

if TYPE_CHECKING:
    from platesync.application.ports.finalization_side_effects import (
        CountReportGeneratorProtocol,
        FinalizationNotifierProtocol,
    )
    from platesync.domain.models.batch import Batch
    from platesync.domain.models.donation import LedgerSummary

logger = logging.getLogger(__name__)


class FinalizationSideEffectDispatcher:
    """Schedules best-effort follow-ups for a finalized batch.

    dispatch() returns immediately; the follow-ups run as background
    tasks on the current event loop. drain() waits for them, which is
    what tests and graceful shutdown use.
    """

    def __init__(
        self,
        notifier: FinalizationNotifierProtocol | None = None,
        report_generator: CountReportGeneratorProtocol | None = None,
        config: AttestationConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            notifier: Receives on_finalized(batch_id). Optional.
            report_generator: Renders the count report. Optional.
            config: Retry budget for each follow-up.
            sleep: Awaitable sleep (injectable for tests).
        """
        self._notifier = notifier
        self._report_generator = report_generator
        self._config = config or DEFAULT_ATTESTATION_CONFIG
        self._policy = ErrorPolicy(
            max_attempts=self._config.side_effect_max_attempts,
            base_delay_seconds=self._config.side_effect_backoff_base_seconds,
            max_delay_seconds=self._config.side_effect_backoff_base_seconds
            * 2 ** (self._config.side_effect_max_attempts - 1),
        )
        self._sleep = sleep
        self._pending: set[asyncio.Task[bool]] = set()
        self._delivered = 0
        self._failed = 0

    @property
    def delivered_count(self) -> int:
        """Follow-ups that eventually succeeded."""
        return self._delivered

    @property
    def failed_count(self) -> int:
        """Follow-ups that exhausted their attempts."""
        return self._failed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def dispatch(self, batch: Batch, summary: LedgerSummary) -> None:
        """Schedule the follow-ups for a freshly finalized batch.

        Must be called from a running event loop. Never raises.

        Args:
            batch: The batch as stored after the FINALIZED write.
            summary: The frozen ledger summary.
        """
        if self._report_generator is not None:
            report = CountReport.from_frozen(batch, summary)
            generator = self._report_generator
            self._schedule(
                "generate_count_report",
                batch.id,
                lambda: generator.generate_count_report(report),
            )
        if self._notifier is not None:
            notifier = self._notifier
            self._schedule(
                "on_finalized",
                batch.id,
                lambda: notifier.on_finalized(batch.id),
            )

    async def drain(self) -> None:
        """Wait for every scheduled follow-up to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(
        self,
        name: str,
        batch_id: str,
        call: Callable[[], Awaitable[None]],
    ) -> None:
        task = asyncio.create_task(self._run_with_retry(name, batch_id, call))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_with_retry(
        self,
        name: str,
        batch_id: str,
        call: Callable[[], Awaitable[None]],
    ) -> bool:
        max_attempts = self._policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            try:
                await call()
            except Exception as e:
                if attempt >= max_attempts:
                    self._failed += 1
                    logger.warning(
                        "Finalization follow-up failed permanently: "
                        "side_effect=%s, batch_id=%s, attempts=%d, error=%s",
                        name,
                        batch_id,
                        attempt,
                        e,
                    )
                    return False
                delay = self._policy.backoff_delay(attempt)
                logger.info(
                    "Finalization follow-up failed, retrying: "
                    "side_effect=%s, batch_id=%s, attempt=%d/%d, delay=%.2fs, error=%s",
                    name,
                    batch_id,
                    attempt,
                    max_attempts,
                    delay,
                    e,
                )
                await self._sleep(delay)
            else:
                self._delivered += 1
                logger.info(
                    "Finalization follow-up delivered: side_effect=%s, batch_id=%s, attempt=%d",
                    name,
                    batch_id,
                    attempt,
                )
                return True
        return False
