"""Finalization follow-up stubs.

Recording implementations of the notifier and report generator ports.
Both can be told to fail a number of times before succeeding.
"""

from __future__ import annotations

from platesync.application.ports.finalization_side_effects import (
    CountReportGeneratorProtocol,
    FinalizationNotifierProtocol,
)
from platesync.domain.models.count_report import CountReport


class RecordingNotifierStub(FinalizationNotifierProtocol):
    """Records finalized batch ids.

    Attributes:
        notified: Batch ids delivered successfully, in order.
        attempts: Total on_finalized calls, including failed ones.
    """

    def __init__(self, fail_times: int = 0) -> None:
        self._fail_remaining = fail_times
        self.notified: list[str] = []
        self.attempts = 0

    async def on_finalized(self, batch_id: str) -> None:
        self.attempts += 1
        if self._fail_remaining > 0:
            self._fail_remaining -= 1
            raise ConnectionError(f"notification channel unavailable ({batch_id})")
        self.notified.append(batch_id)


class CountReportGeneratorStub(CountReportGeneratorProtocol):
    """Collects generated count reports.

    Attributes:
        reports: Reports generated successfully, in order.
        attempts: Total generate_count_report calls, including failed ones.
    """

    def __init__(self, fail_times: int = 0) -> None:
        self._fail_remaining = fail_times
        self.reports: list[CountReport] = []
        self.attempts = 0

    async def generate_count_report(self, report: CountReport) -> None:
        self.attempts += 1
        if self._fail_remaining > 0:
            self._fail_remaining -= 1
            raise RuntimeError(f"report renderer unavailable ({report.batch_id})")
        self.reports.append(report)
