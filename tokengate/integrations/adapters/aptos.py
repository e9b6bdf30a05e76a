"""Aptos fullnode/indexer adapter.

Read-only HTTP access to the Aptos REST API and GraphQL indexer. A fresh
``httpx.AsyncClient`` is opened for every call so no connection state outlives
a verification.
"""

from typing import Any

import httpx

from tokengate.core.config import settings
from tokengate.integrations.interfaces.base import (
    ChainNotFoundError,
    ChainQueryError,
    ChainQueryProvider,
)


OWNED_TOKENS_QUERY = """
query OwnedTokens($owner: String!, $limit: Int) {
  current_token_ownerships_v2(
    where: {owner_address: {_eq: $owner}, amount: {_gt: 0}}
    limit: $limit
  ) {
    token_data_id
    owner_address
    amount
    token_standard
    current_token_data {
      token_name
      collection_id
      current_collection {
        collection_id
        collection_name
        creator_address
      }
    }
  }
}
"""


class AptosChainAdapter(ChainQueryProvider):
    """Chain query provider backed by the public Aptos API."""

    def __init__(
        self,
        api_url: str | None = None,
        indexer_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = (api_url or settings.CHAIN_API_URL).rstrip("/")
        self.indexer_url = indexer_url or settings.CHAIN_INDEXER_URL
        self.timeout = timeout or settings.CHAIN_STRATEGY_TIMEOUT_SECONDS
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 404:
            raise ChainNotFoundError(
                f"Not found: {response.request.url.path}", status_code=404
            )
        if response.status_code >= 400:
            raise ChainQueryError(
                f"Chain API error: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ChainQueryError(f"Chain API returned invalid JSON: {e}") from e

    @staticmethod
    def _expect_list(payload: Any, what: str) -> list[dict[str, Any]]:
        if not isinstance(payload, list):
            raise ChainQueryError(f"Malformed {what} payload: expected a list")
        return payload

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.api_url}{path}", params=params)
        except httpx.HTTPError as e:
            raise ChainQueryError(f"Chain API request failed: {e}") from e
        return self._decode(response)

    # =========================================================================
    # REST API
    # =========================================================================

    async def get_account_resources(self, address: str) -> list[dict[str, Any]]:
        payload = await self._get(f"/accounts/{address}/resources")
        return self._expect_list(payload, "resources")

    async def get_table_items(self, handle: str, limit: int = 100) -> list[dict[str, Any]]:
        payload = await self._get(f"/tables/{handle}/items", params={"limit": limit})
        return self._expect_list(payload, "table items")

    async def get_account_tokens(self, address: str) -> list[dict[str, Any]]:
        payload = await self._get(f"/accounts/{address}/tokens")
        return self._expect_list(payload, "account tokens")

    # =========================================================================
    # Indexer
    # =========================================================================

    async def get_owned_tokens(self, address: str) -> list[dict[str, Any]]:
        body = {
            "query": OWNED_TOKENS_QUERY,
            "variables": {"owner": address, "limit": settings.CHAIN_TABLE_ITEMS_LIMIT},
        }
        try:
            async with self._client() as client:
                response = await client.post(self.indexer_url, json=body)
        except httpx.HTTPError as e:
            raise ChainQueryError(f"Indexer request failed: {e}") from e

        payload = self._decode(response)
        if not isinstance(payload, dict):
            raise ChainQueryError("Malformed indexer payload: expected an object")

        if payload.get("errors"):
            first = payload["errors"][0] if isinstance(payload["errors"], list) else payload["errors"]
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise ChainQueryError(f"Indexer query failed: {message}")

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ChainQueryError("Malformed indexer payload: missing data")
        return self._expect_list(data.get("current_token_ownerships_v2"), "token ownerships")
