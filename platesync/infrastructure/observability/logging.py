"""structlog setup for the attestation services.

Entries are JSON lines in production and colored console lines in
development. Every entry carries a timestamp, the level, the correlation id
of the call that produced it, and whatever the service bound (service,
component, operation, batch_id, attestor_id, ...).

Signature names are personal data. redact_signatures replaces any that
reach a log call with their length before rendering.

Environment Variables:
- LOG_LEVEL: minimum level (default INFO)
- PLATESYNC_ENV: "production" or "development" when no environment is
  passed to configure_structlog (default production)
"""

import logging
import os
from typing import Any

import structlog
from structlog.typing import Processor

from platesync.infrastructure.observability.correlation import (
    correlation_id_processor,
)

SIGNATURE_FIELDS = frozenset(
    {
        "signature_name",
        "primary_attestor_name",
        "secondary_attestor_name",
    }
)


def _level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def redact_signatures(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Swap signature names for their length."""
    for key in SIGNATURE_FIELDS & event_dict.keys():
        value = event_dict.pop(key)
        event_dict[f"{key}_length"] = len(value) if isinstance(value, str) else 0
    return event_dict


def configure_structlog(environment: str | None = None) -> None:
    """Configure structlog once at process start.

    Also sets the level of the stdlib "platesync" logger, which the retry
    policy and the side-effect dispatcher log through.

    Args:
        environment: "production" for JSON, anything else for console
            output. Defaults to PLATESYNC_ENV, then production.
    """
    environment = environment or os.environ.get("PLATESYNC_ENV", "production")
    level = _level_from_env()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        correlation_id_processor,
        redact_signatures,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if environment == "production":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.getLogger("platesync").setLevel(level)


def get_logger_for_component(
    name: str, component: str = "attestation"
) -> structlog.BoundLogger:
    """Logger for module-level code outside the LoggingMixin services."""
    return structlog.get_logger().bind(service=name, component=component)
