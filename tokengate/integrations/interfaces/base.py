"""Base interfaces for integration adapters.

These interfaces define the contract for every collaborator the verification
core talks to: the chain RPC/indexer, the storage service that issues signed
URLs, the view counter and the access log store. The core never assumes a
particular chain client or persistence technology behind them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any


class ChainQueryError(Exception):
    """A chain RPC/indexer request failed (network, non-2xx, bad payload)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ChainNotFoundError(ChainQueryError):
    """The chain reported the account, resource or table as not found."""

    pass


class StorageError(Exception):
    """The storage service could not issue a signed URL."""

    pass


class AuditWriteError(Exception):
    """A view counter or access log write failed."""

    pass


@dataclass(frozen=True)
class SignedUrl:
    """A time-limited, capability-bearing URL for a stored asset."""

    url: str
    expires_at: datetime


@dataclass(frozen=True)
class AccessLogEntry:
    """Immutable record of one successful access grant."""

    content_id: str
    wallet_address: str
    accessed_at: datetime
    user_id: str | None = None


class ChainQueryProvider(ABC):
    """Interface for read-only token queries against a chain.

    Each capability may fail independently with ChainQueryError.
    Payloads are returned as decoded JSON, unvalidated.
    """

    @abstractmethod
    async def get_account_resources(self, address: str) -> list[dict[str, Any]]:
        """
        Retrieve all on-chain resources held by an account.

        Args:
            address: Normalized 0x-prefixed account address

        Returns:
            List of resource objects, each with at least a ``type``
        """
        pass

    @abstractmethod
    async def get_table_items(self, handle: str, limit: int = 100) -> list[dict[str, Any]]:
        """
        Retrieve items from an on-chain table by handle.

        Args:
            handle: Table handle taken from a resource
            limit: Maximum number of items to return

        Returns:
            List of table items (``{"key": ..., "value": ...}``)
        """
        pass

    @abstractmethod
    async def get_owned_tokens(self, address: str) -> list[dict[str, Any]]:
        """Retrieve token ownership records for an account from the indexer."""
        pass

    @abstractmethod
    async def get_account_tokens(self, address: str) -> list[dict[str, Any]]:
        """Retrieve tokens for an account from the alternate token-v2 endpoint."""
        pass


class SignedUrlProvider(ABC):
    """Interface for issuing signed asset URLs."""

    @abstractmethod
    async def create_signed_url(
        self,
        path: str,
        ttl_seconds: int,
        issued_to: str | None = None,
    ) -> SignedUrl:
        """
        Issue a signed URL for a stored asset.

        Args:
            path: Asset path relative to the storage root
            ttl_seconds: URL lifetime in seconds
            issued_to: Wallet the URL was issued to, recorded for audit only

        Returns:
            SignedUrl

        Raises:
            StorageError: If the asset is missing or signing fails
        """
        pass


class ViewCounterStore(ABC):
    """Interface for the shared per-content view counter."""

    @abstractmethod
    async def increment_counter(self, content_id: str) -> int:
        """
        Atomically increment the view counter for a content item.

        Must never be implemented as read-then-write from the client.

        Returns:
            The counter value after the increment

        Raises:
            AuditWriteError: If the increment could not be applied
        """
        pass


class AccessLogStore(ABC):
    """Interface for the append-only access log."""

    @abstractmethod
    async def append(self, entry: AccessLogEntry) -> None:
        """
        Append one access log entry.

        Raises:
            AuditWriteError: If the entry could not be written
        """
        pass

    @abstractmethod
    async def list_for_content(self, content_id: str, limit: int = 100) -> list[AccessLogEntry]:
        """Return the most recent entries for a content item, newest first."""
        pass
