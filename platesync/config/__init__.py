"""Configuration module for PlateSync.

Available Configurations:
- AttestationConfig: Timeouts and retry budgets for the attestation workflow
"""

from platesync.config.attestation_config import (
    DEFAULT_ATTESTATION_CONFIG,
    TEST_ATTESTATION_CONFIG,
    AttestationConfig,
)

__all__ = [
    "AttestationConfig",
    "DEFAULT_ATTESTATION_CONFIG",
    "TEST_ATTESTATION_CONFIG",
]
