"""In-memory adapters for development and testing.

These stand in for the chain and the persistence collaborators when running
without network access or a database (``CHAIN_ADAPTER=mock``) and in tests.
"""

import asyncio
from collections import Counter
from typing import Any

from tokengate.integrations.interfaces.base import (
    AccessLogEntry,
    AccessLogStore,
    AuditWriteError,
    ChainNotFoundError,
    ChainQueryProvider,
    ViewCounterStore,
)

# Collection every wallet "owns" in mock mode unless told otherwise
DEMO_COLLECTION_ID = "0x5e7c0f1d3a9b2e4c6f8a1b3d5e7f9a0c2e4b6d8f1a3c5e7b9d0f2a4c6e8b0d21"
DEMO_CREATOR_ADDRESS = "0x9a3f0c1e2d4b6a8f0e2c4a6b8d0f2e4c6a8b0d2f4e6a8c0b2d4f6e8a0c2b4d6f"

CannedResponse = list[dict[str, Any]] | Exception | None


def _demo_ownership(address: str) -> dict[str, Any]:
    return {
        "token_data_id": f"{DEMO_CREATOR_ADDRESS}::Demo Collection::Demo #1",
        "owner_address": address,
        "amount": 1,
        "current_token_data": {
            "token_name": "Demo #1",
            "collection_id": DEMO_COLLECTION_ID,
            "current_collection": {
                "collection_id": DEMO_COLLECTION_ID,
                "collection_name": "Demo Collection",
                "creator_address": DEMO_CREATOR_ADDRESS,
            },
        },
    }


class MockChainAdapter(ChainQueryProvider):
    """
    Chain query provider serving canned responses.

    Each capability can be given a list to return or an exception to raise.
    Calls are counted per capability in ``calls`` so tests can assert which
    strategies ran. ``delay`` adds a sleep before every response.
    """

    def __init__(
        self,
        resources: CannedResponse = None,
        table_items: CannedResponse = None,
        owned_tokens: CannedResponse = None,
        account_tokens: CannedResponse = None,
        delay: float = 0.0,
        demo: bool = False,
    ):
        self.resources = resources
        self.table_items = table_items
        self.owned_tokens = owned_tokens
        self.account_tokens = account_tokens
        self.delay = delay
        self.demo = demo
        self.calls: Counter[str] = Counter()

    async def _respond(self, capability: str, response: CannedResponse) -> list[dict[str, Any]]:
        self.calls[capability] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(response, Exception):
            raise response
        return list(response or [])

    async def get_account_resources(self, address: str) -> list[dict[str, Any]]:
        if self.demo and self.resources is None:
            # No token store, as for most current accounts
            self.calls["get_account_resources"] += 1
            raise ChainNotFoundError("Account has no token store", status_code=404)
        return await self._respond("get_account_resources", self.resources)

    async def get_table_items(self, handle: str, limit: int = 100) -> list[dict[str, Any]]:
        items = await self._respond("get_table_items", self.table_items)
        return items[:limit]

    async def get_owned_tokens(self, address: str) -> list[dict[str, Any]]:
        if self.demo and self.owned_tokens is None:
            return await self._respond("get_owned_tokens", [_demo_ownership(address)])
        return await self._respond("get_owned_tokens", self.owned_tokens)

    async def get_account_tokens(self, address: str) -> list[dict[str, Any]]:
        return await self._respond("get_account_tokens", self.account_tokens)


class InMemoryViewCounter(ViewCounterStore):
    """View counter held in process memory, guarded by an asyncio lock."""

    def __init__(self, fail: bool = False):
        self._counts: dict[str, int] = {}
        self._lock = asyncio.Lock()
        self.fail = fail

    async def increment_counter(self, content_id: str) -> int:
        if self.fail:
            raise AuditWriteError(f"View counter unavailable for {content_id}")
        async with self._lock:
            current = self._counts.get(content_id, 0)
            # Suspension point inside the critical section
            await asyncio.sleep(0)
            self._counts[content_id] = current + 1
            return self._counts[content_id]

    def get(self, content_id: str) -> int:
        return self._counts.get(content_id, 0)


class InMemoryAccessLogStore(AccessLogStore):
    """Append-only access log held in process memory."""

    def __init__(self, fail: bool = False):
        self._entries: list[AccessLogEntry] = []
        self.fail = fail

    async def append(self, entry: AccessLogEntry) -> None:
        if self.fail:
            raise AuditWriteError(f"Access log unavailable for {entry.content_id}")
        self._entries.append(entry)

    async def list_for_content(self, content_id: str, limit: int = 100) -> list[AccessLogEntry]:
        entries = [e for e in self._entries if e.content_id == content_id]
        entries.sort(key=lambda e: e.accessed_at, reverse=True)
        return entries[:limit]

    @property
    def entries(self) -> tuple[AccessLogEntry, ...]:
        return tuple(self._entries)
