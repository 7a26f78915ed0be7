"""Logging and observability configuration using Pydantic Logfire.

All modules use Python's standard logging library (logging.getLogger(__name__));
Logfire captures and enriches these records once configured.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Message", task_id="123", key="saved_tasks")
"""

import logging

import logfire

from zenith.core.config import settings


def configure_logfire(*, token: str | None = None, environment: str = "production") -> None:
    """Configure Pydantic Logfire with token from environment.

    Nothing is sent unless a token is present, so local and test runs stay offline.
    """
    logfire.configure(
        token=token or settings.logfire_token,
        service_name="zenith",
        service_version="0.1.0",
        environment=environment,
        send_to_logfire="if-token-present",
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_httpx() -> None:
    """Trace outgoing LLM requests made through httpx."""
    logfire.instrument_httpx()
    logger = logging.getLogger(__name__)
    logger.info("httpx instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("points_engine.award"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (task_id, key, operation_type, etc.)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
