"""Structured logging configuration.

Emits JSON log lines suitable for any JSON-based log aggregation system.

All logs include:
- ISO8601 timestamp
- Log level
- Logger name
- Event type (for filtering)
- Additional structured data passed via ``extra``

Access grants and denials are tagged as security events so they can be
routed separately from chain/debug noise.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from tokengate.core.config import settings


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds service metadata to every record.

    Adds:
    - @timestamp: ISO8601 timestamp
    - level: Log level
    - service: Service name, version and environment
    - event_type: For filtering
    """

    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "@timestamp",
                "levelname": "level",
                "name": "logger",
            },
            **kwargs,
        )

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["@timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["service"] = {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

        if "level" in log_record:
            log_record["level"] = log_record["level"].upper()

        if "event_type" not in log_record:
            log_record["event_type"] = f"log.{record.name}"

        log_record["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }


class SecurityEventFilter(logging.Filter):
    """Filter to tag security-relevant events.

    Adds an ``is_security_event`` flag to every record.
    """

    SECURITY_LOGGERS = {
        "security.access",
        "security.storage",
    }

    SECURITY_KEYWORDS = {
        "access", "denied", "granted", "signed url", "token", "expired",
    }

    def filter(self, record: logging.LogRecord) -> bool:
        is_security_logger = any(
            record.name.startswith(logger)
            for logger in self.SECURITY_LOGGERS
        )

        msg_lower = str(record.getMessage()).lower()
        has_security_keyword = any(
            keyword in msg_lower
            for keyword in self.SECURITY_KEYWORDS
        )

        record.is_security_event = is_security_logger or has_security_keyword
        return True


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structured logging for the application.

    Call this at application startup.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.DEBUG else level)

    root_logger.handlers.clear()

    json_formatter = ServiceJsonFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(json_formatter)
    console_handler.addFilter(SecurityEventFilter())
    root_logger.addHandler(console_handler)

    _configure_uvicorn_loggers(json_formatter)

    # httpx logs every request line at INFO, which drowns strategy logs
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info(
        "Logging configured",
        extra={
            "event_type": "system.startup.logging_configured",
            "log_level": logging.getLevelName(root_logger.level),
        },
    )


def _configure_uvicorn_loggers(formatter: logging.Formatter) -> None:
    """Configure uvicorn loggers to use JSON format."""
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def format_access_event(
    event_type: str,
    description: str,
    content_id: str | None = None,
    wallet_address: str | None = None,
    user_id: str | None = None,
    metadata: dict | None = None,
) -> dict:
    """Format an access decision event for structured logging.

    Returns a dict suitable for ``logger.info(..., extra=...)``.

    Usage:
        logger.info(
            "Access granted",
            extra=format_access_event(
                event_type="verification.granted",
                description="Wallet holds a token from the gating collection",
                content_id=content_id,
                wallet_address=wallet,
            )
        )
    """
    event: dict[str, Any] = {
        "event_type": event_type,
        "description": description,
    }

    if content_id:
        event["content_id"] = content_id
    if wallet_address:
        event["wallet_address"] = wallet_address
    if user_id:
        event["user_id"] = user_id
    if metadata:
        event["metadata"] = metadata

    return event
