"""
Chain Query Adapter.

Lists the tokens a wallet holds by running an ordered list of retrieval
strategies against a ChainQueryProvider:

1. token_store_scan: account resources -> TokenStore table handle -> table items
2. indexer_ownerships: indexer token-ownership query
3. account_tokens: alternate token-v2 REST endpoint

Strategies run one after another and never merge results. The first strategy
that succeeds with a non-empty list wins. A strategy that raises, times out or
comes back empty hands over to the next one. Only when every strategy raised
is the chain considered unavailable; an all-empty read is the normal
"holds no tokens" answer.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from tokengate.core.config import settings
from tokengate.core.metrics import track_strategy_attempt
from tokengate.integrations.interfaces.base import ChainQueryError, ChainQueryProvider
from tokengate.ownership.records import normalize_identifier

logger = logging.getLogger(__name__)


class ChainUnavailableError(Exception):
    """Every retrieval strategy failed. Retryable; never means "no tokens"."""

    def __init__(self, wallet_address: str, results: Sequence["StrategyResult"]):
        self.wallet_address = wallet_address
        self.results = list(results)
        summary = ", ".join(f"{r.strategy}: {r.error}" for r in self.results)
        super().__init__(f"All chain query strategies failed ({summary})")


# =============================================================================
# Strategy results
# =============================================================================


@dataclass(frozen=True)
class StrategyResult:
    """Uniform outcome of one strategy attempt."""

    strategy: str
    records: list[dict[str, Any]] | None = None
    error: str | None = None
    timed_out: bool = False
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str:
        if self.timed_out:
            return "timeout"
        if self.error is not None:
            return "error"
        return "records" if self.records else "empty"


# =============================================================================
# Strategies
# =============================================================================


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _records(items: Any) -> list[dict[str, Any]]:
    if not isinstance(items, list):
        raise ChainQueryError("Malformed token list")
    return [item for item in items if isinstance(item, dict)]


async def token_store_scan(provider: ChainQueryProvider, address: str) -> list[dict[str, Any]]:
    """Read token store table items; each item's ``value`` is a record."""
    resources = await provider.get_account_resources(address)

    token_store = next(
        (
            r for r in _records(resources)
            if r.get("type") == settings.CHAIN_TOKEN_STORE_TYPE
        ),
        None,
    )
    if token_store is None:
        raise ChainQueryError(f"No {settings.CHAIN_TOKEN_STORE_TYPE} resource")

    handle = _mapping(_mapping(token_store.get("data")).get("tokens")).get("handle")
    if not isinstance(handle, str) or not handle:
        raise ChainQueryError("Token store resource has no table handle")

    items = await provider.get_table_items(handle, limit=settings.CHAIN_TABLE_ITEMS_LIMIT)
    return [item["value"] for item in _records(items) if isinstance(item.get("value"), dict)]


async def indexer_ownerships(provider: ChainQueryProvider, address: str) -> list[dict[str, Any]]:
    return _records(await provider.get_owned_tokens(address))


async def account_tokens(provider: ChainQueryProvider, address: str) -> list[dict[str, Any]]:
    return _records(await provider.get_account_tokens(address))


StrategyFn = Callable[[ChainQueryProvider, str], Awaitable[list[dict[str, Any]]]]

DEFAULT_STRATEGIES: tuple[tuple[str, StrategyFn], ...] = (
    ("token_store_scan", token_store_scan),
    ("indexer_ownerships", indexer_ownerships),
    ("account_tokens", account_tokens),
)


# =============================================================================
# Adapter
# =============================================================================


class ChainQueryAdapter:
    """Runs the retrieval strategies in order against one provider."""

    def __init__(
        self,
        provider: ChainQueryProvider,
        strategies: Sequence[tuple[str, StrategyFn]] = DEFAULT_STRATEGIES,
        timeout: float | None = None,
    ):
        self.provider = provider
        self.strategies = tuple(strategies)
        self.timeout = timeout if timeout is not None else settings.CHAIN_STRATEGY_TIMEOUT_SECONDS

    async def _attempt(self, name: str, strategy: StrategyFn, address: str) -> StrategyResult:
        start = time.monotonic()
        try:
            records = await asyncio.wait_for(strategy(self.provider, address), timeout=self.timeout)
            result = StrategyResult(strategy=name, records=records)
        except asyncio.TimeoutError:
            result = StrategyResult(
                strategy=name,
                error=f"timed out after {self.timeout}s",
                timed_out=True,
            )
        except Exception as e:
            # Chain errors, transport errors and malformed payloads all land here
            result = StrategyResult(strategy=name, error=f"{type(e).__name__}: {e}")

        duration = time.monotonic() - start
        result = replace(result, duration=duration)
        track_strategy_attempt(name, result.outcome, duration)

        if not result.ok:
            logger.warning(
                f"Chain strategy {name} failed: {result.error}",
                extra={
                    "event_type": "chain.strategy_failed",
                    "strategy": name,
                    "wallet_address": address,
                    "outcome": result.outcome,
                },
            )
        else:
            logger.debug(
                f"Chain strategy {name} returned {len(result.records)} records",
                extra={"event_type": "chain.strategy_completed", "strategy": name},
            )
        return result

    async def run(self, wallet_address: str) -> list[StrategyResult]:
        """
        Run strategies until one returns records.

        Returns:
            The result of every strategy that was attempted, in order
        """
        address = normalize_identifier(wallet_address)
        if address is None:
            raise ValueError("wallet_address is required")

        results: list[StrategyResult] = []
        for name, strategy in self.strategies:
            result = await self._attempt(name, strategy, address)
            results.append(result)
            if result.ok and result.records:
                break
        return results

    async def fetch_tokens(self, wallet_address: str) -> list[dict[str, Any]]:
        """
        List the token records a wallet holds.

        Returns:
            Records from the first strategy that found any, or an empty list
            when at least one strategy succeeded but none found anything

        Raises:
            ChainUnavailableError: If every strategy failed
        """
        results = await self.run(wallet_address)

        for result in results:
            if result.ok and result.records:
                return result.records

        if results and all(not r.ok for r in results):
            raise ChainUnavailableError(wallet_address, results)

        return []
