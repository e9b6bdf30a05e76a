"""Interface definitions for integration adapters."""

from tokengate.integrations.interfaces.base import (
    AccessLogEntry,
    AccessLogStore,
    AuditWriteError,
    ChainNotFoundError,
    ChainQueryError,
    ChainQueryProvider,
    SignedUrl,
    SignedUrlProvider,
    StorageError,
    ViewCounterStore,
)

__all__ = [
    "AccessLogEntry",
    "AccessLogStore",
    "AuditWriteError",
    "ChainNotFoundError",
    "ChainQueryError",
    "ChainQueryProvider",
    "SignedUrl",
    "SignedUrlProvider",
    "StorageError",
    "ViewCounterStore",
]
