"""
PlateSync - donation batch attestation and finalization.

Two distinct attestors confirm a counted batch of donations before the
batch is frozen as an immutable financial record.

Workflow:
- OPEN -> PRIMARY_ATTESTED (first signature)
- PRIMARY_ATTESTED -> PENDING_FINALIZATION (second, distinct signature)
- PENDING_FINALIZATION -> FINALIZED (ledger frozen, exactly once)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
