"""Attestation errors.

These errors are caused by the caller's input or identity and are
surfaced immediately for user-facing correction. None of them is ever
retried automatically.
"""

from __future__ import annotations

from platesync.domain.errors.workflow import WorkflowError


class ValidationError(WorkflowError):
    """Raised when an operation's input has the wrong shape.

    Attributes:
        field: Name of the offending input field.
        reason: Why the value was rejected.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class IdentityConflictError(WorkflowError):
    """Raised when the same person tries to attest a batch twice.

    The secondary attestor must differ from the primary attestor. This
    is a hard business rule and has no override.

    Attributes:
        batch_id: The batch being attested.
        attestor_id: The user id that already holds the primary signature.
    """

    def __init__(self, batch_id: str, attestor_id: str) -> None:
        self.batch_id = batch_id
        self.attestor_id = attestor_id
        super().__init__(
            f"Attestor {attestor_id} already attested batch {batch_id} "
            "as primary; the secondary attestor must be a different person"
        )


class IneligibleAttestorError(WorkflowError):
    """Raised when the identity resolver does not accept an attestor.

    Attributes:
        batch_id: The batch being attested.
        attestor_id: The rejected user id.
        reason: "unknown" when the user does not resolve, "ineligible"
            when the user is unverified or otherwise not allowed.
    """

    def __init__(self, batch_id: str, attestor_id: str, reason: str) -> None:
        self.batch_id = batch_id
        self.attestor_id = attestor_id
        self.reason = reason
        super().__init__(
            f"Attestor {attestor_id} is not eligible to attest batch "
            f"{batch_id}: {reason}"
        )
