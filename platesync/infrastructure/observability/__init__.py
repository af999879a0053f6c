"""Observability: structured logging and correlation ids.

Usage:
    from platesync.infrastructure.observability import (
        configure_structlog,
        correlation_scope,
    )

    configure_structlog(environment="production")
    with correlation_scope(request_id):
        ...
"""

from platesync.infrastructure.observability.correlation import (
    correlation_id_processor,
    correlation_scope,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from platesync.infrastructure.observability.logging import (
    configure_structlog,
    get_logger_for_component,
    redact_signatures,
)

__all__: list[str] = [
    "configure_structlog",
    "correlation_id_processor",
    "correlation_scope",
    "generate_correlation_id",
    "get_correlation_id",
    "get_logger_for_component",
    "redact_signatures",
    "set_correlation_id",
]
