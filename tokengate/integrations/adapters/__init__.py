"""Integration adapter implementations."""

from tokengate.integrations.adapters.aptos import AptosChainAdapter
from tokengate.integrations.adapters.factory import AdapterFactory, get_adapter
from tokengate.integrations.adapters.local_storage import LocalSignedUrlStorage
from tokengate.integrations.adapters.mock import (
    InMemoryAccessLogStore,
    InMemoryViewCounter,
    MockChainAdapter,
)

__all__ = [
    "AptosChainAdapter",
    "InMemoryAccessLogStore",
    "InMemoryViewCounter",
    "LocalSignedUrlStorage",
    "MockChainAdapter",
    "get_adapter",
    "AdapterFactory",
]
