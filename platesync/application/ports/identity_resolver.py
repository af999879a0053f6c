"""Identity resolver port.

External collaborator that answers questions about user accounts. The
core only reads from it.

Golden Rules:
1. VERIFY BEFORE WRITE - Resolve identity before any state change
2. FAIL LOUD - Unknown users are rejected, never auto-created
"""

from __future__ import annotations

from typing import Protocol

from platesync.domain.models.attestor import AttestorIdentity


class IdentityResolverProtocol(Protocol):
    """Protocol for resolving prospective attestors."""

    async def get_attestor(self, user_id: str) -> AttestorIdentity | None:
        """Resolve a user id.

        Returns:
            The identity if the user is known, None otherwise.
        """
        ...

    async def is_eligible_attestor(
        self,
        user_id: str,
        excluding_user_id: str | None = None,
    ) -> bool:
        """Check whether a user may attest.

        Args:
            user_id: The prospective attestor.
            excluding_user_id: A user the attestor must not be (the other
                attestor of the batch).

        Returns:
            True if the user is known, verified and distinct from
            excluding_user_id.
        """
        ...
