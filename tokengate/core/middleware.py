"""Security middleware for token redaction and logging protection.

This module prevents signed asset URL tokens from leaking in logs, error
traces, and referrer headers.

Token Security Model:
- Signed asset URLs are bearer credentials valid for an hour
- Tokens must never appear in logs (anyone reading the logs could fetch the asset)
- Tokens must never leak via Referer headers (browser security)
"""

import logging
import re
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tokengate.core.config import settings
from tokengate.core.security import SIGNED_ASSET_PATH

# Matches /api/v1/storage/signed/{jwt}
SIGNED_ASSET_PATH_PATTERN = re.compile(
    r"(/storage/signed/)"
    r"([A-Za-z0-9_-]+\.?[A-Za-z0-9_-]*\.?[A-Za-z0-9_-]*)"
)
TOKEN_REDACTED = "[TOKEN_REDACTED]"


def redact_token_from_path(path: str) -> str:
    """Redact signed URL tokens from URL paths.

    Args:
        path: The request path potentially containing a token

    Returns:
        Path with tokens replaced by [TOKEN_REDACTED]
    """
    return SIGNED_ASSET_PATH_PATTERN.sub(rf"\1{TOKEN_REDACTED}", path)


def is_signed_asset_path(path: str) -> bool:
    """Check if a path is a signed asset URL that carries a token."""
    return path.startswith(f"{settings.API_V1_PREFIX}{SIGNED_ASSET_PATH}")


def _redact(value):
    if isinstance(value, str):
        return redact_token_from_path(value)
    return value


class TokenRedactionFilter(logging.Filter):
    """Logging filter that redacts signed URL tokens from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_token_from_path(record.msg)

        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(_redact(arg) for arg in record.args)
            elif isinstance(record.args, dict):
                record.args = {k: _redact(v) for k, v in record.args.items()}

        # Grants log the issued URL via extra
        for attr in ("url", "signed_url"):
            if hasattr(record, attr):
                setattr(record, attr, _redact(getattr(record, attr)))

        return True


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add standard security headers to all API responses.

    Note: These are applied to ALL responses. Signed asset responses get
    stricter headers from TokenRedactionMiddleware.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if request.url.path.startswith("/api/"):
            # Prevent caching of API responses with sensitive data
            if "Cache-Control" not in response.headers:
                response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"

        return response


class TokenRedactionMiddleware(BaseHTTPMiddleware):
    """Middleware to stop signed URL tokens leaking via the Referer header."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        original_path = request.url.path

        response = await call_next(request)

        if is_signed_asset_path(original_path):
            response.headers["Referrer-Policy"] = "no-referrer"

        return response


def install_token_redaction_logging():
    """Install token redaction filter on all relevant loggers.

    This should be called during application startup to ensure
    tokens are never logged by any logger.
    """
    redaction_filter = TokenRedactionFilter()

    root_logger = logging.getLogger()
    root_logger.addFilter(redaction_filter)
    for handler in root_logger.handlers:
        handler.addFilter(redaction_filter)

    logger_names = [
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "fastapi",
        "security.access",
        "security.storage",
        "tokengate",
    ]

    for name in logger_names:
        logging.getLogger(name).addFilter(redaction_filter)


def redact_exception_args(exc: Exception) -> Exception:
    """Redact signed URL tokens from exception arguments."""
    if exc.args:
        exc.args = tuple(_redact(arg) for arg in exc.args)
    return exc
