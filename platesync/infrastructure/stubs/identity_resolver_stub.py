"""Identity resolver stub implementation."""

from __future__ import annotations

from platesync.application.ports.identity_resolver import IdentityResolverProtocol
from platesync.domain.models.attestor import AttestorIdentity


class IdentityResolverStub(IdentityResolverProtocol):
    """In-memory user directory for development and testing."""

    def __init__(self) -> None:
        self._users: dict[str, AttestorIdentity] = {}

    def add_user(
        self,
        user_id: str,
        display_name: str,
        verified: bool = True,
    ) -> AttestorIdentity:
        """Register a user the resolver can find."""
        identity = AttestorIdentity(
            user_id=user_id,
            display_name=display_name,
            verified=verified,
        )
        self._users[user_id] = identity
        return identity

    async def get_attestor(self, user_id: str) -> AttestorIdentity | None:
        return self._users.get(user_id)

    async def is_eligible_attestor(
        self,
        user_id: str,
        excluding_user_id: str | None = None,
    ) -> bool:
        if excluding_user_id is not None and user_id == excluding_user_id:
            return False
        identity = self._users.get(user_id)
        return identity is not None and identity.verified

    def clear(self) -> None:
        self._users.clear()
