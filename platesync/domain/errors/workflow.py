"""Workflow error base class for PlateSync.

Every failure of the attestation and finalization workflow derives from
WorkflowError so callers can catch the whole family at the presentation
boundary. Workflow errors are never silently ignored.
"""

from platesync.domain.exceptions import PlateSyncError


class WorkflowError(PlateSyncError):
    """Raised when a batch workflow operation cannot be applied.

    Subclasses carry the batch id and the context needed for the caller
    to decide between correcting input, re-fetching state or retrying.
    """

    pass
