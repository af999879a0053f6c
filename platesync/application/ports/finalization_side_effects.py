"""Ports for the follow-ups of a finalized batch.

Both collaborators are best effort: their failures are logged and
retried independently, and never roll back a finalization.
"""

from __future__ import annotations

from typing import Protocol

from platesync.domain.models.count_report import CountReport


class FinalizationNotifierProtocol(Protocol):
    """Notifies recipients that a batch was finalized."""

    async def on_finalized(self, batch_id: str) -> None:
        """Handle a finalized batch. Fire-and-forget from the core's view."""
        ...


class CountReportGeneratorProtocol(Protocol):
    """Renders the count report of a finalized batch."""

    async def generate_count_report(self, report: CountReport) -> None:
        """Render and store (or send) the count report."""
        ...
