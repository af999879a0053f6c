"""Attestor identity reference.

The core never owns user records. It only holds what the identity
resolver reports about a user at the moment of attestation.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AttestorIdentity:
    """What the identity resolver knows about a prospective attestor.

    Attributes:
        user_id: Externally managed user identifier.
        display_name: Name shown for the user.
        verified: Whether the user's account is verified.
    """

    user_id: str
    display_name: str
    verified: bool = False
