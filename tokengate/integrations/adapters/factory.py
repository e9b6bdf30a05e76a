"""Adapter factory for creating the chain query provider."""

from tokengate.core.config import settings
from tokengate.integrations.interfaces.base import ChainQueryProvider


class AdapterFactory:
    """Factory for creating chain adapters based on configuration."""

    _instance: ChainQueryProvider | None = None

    @classmethod
    def get_adapter(cls) -> ChainQueryProvider:
        """Get the configured chain adapter (singleton)."""
        if cls._instance is None:
            cls._instance = cls._create_adapter()
        return cls._instance

    @classmethod
    def _create_adapter(cls) -> ChainQueryProvider:
        """Create a new adapter instance based on configuration."""
        adapter_type = settings.CHAIN_ADAPTER

        if adapter_type == "mock":
            from tokengate.integrations.adapters.mock import MockChainAdapter

            return MockChainAdapter(demo=True)

        elif adapter_type == "aptos":
            from tokengate.integrations.adapters.aptos import AptosChainAdapter

            return AptosChainAdapter()

        else:
            raise ValueError(f"Unknown chain adapter type: {adapter_type}")

    @classmethod
    def reset(cls) -> None:
        """Reset the adapter instance (useful for testing)."""
        cls._instance = None


def get_adapter() -> ChainQueryProvider:
    """Convenience function to get the chain adapter."""
    return AdapterFactory.get_adapter()
