"""
Verification Orchestrator.

Public entry point for NFT-gated access. One call moves through

    Idle -> Resolving -> Granted | Denied | ChainUnavailable | ContentUnavailable

- Idle: no wallet or no target collection; denied without touching the chain
- Resolving: chain query, then ownership resolution
- Granted: signed URL issued, view counted, access logged
- Denied: the chain answered and no record matched
- ChainUnavailable: every chain strategy failed (retryable)
- ContentUnavailable: ownership matched but no URL could be issued

Grants are cached in memory per viewing session, keyed by (wallet, content),
and never shared between viewers. There are no automatic retries; a failed
call is reported and the caller decides.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from tokengate.core.config import settings
from tokengate.core.logging_config import format_access_event
from tokengate.core.metrics import track_verification, verification_cache_hits_total
from tokengate.ownership.records import normalize_identifier
from tokengate.ownership.resolver import OwnershipMatch, find_match
from tokengate.services.access_grant import (
    AccessGrant,
    AccessGrantService,
    ContentUnavailableError,
)
from tokengate.services.chain_query import ChainQueryAdapter, ChainUnavailableError

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security.access")


class VerificationState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    CHAIN_UNAVAILABLE = "chain_unavailable"
    CONTENT_UNAVAILABLE = "content_unavailable"


class DenialReason(str, Enum):
    WALLET_NOT_CONNECTED = "wallet_not_connected"
    COLLECTION_NOT_CONFIGURED = "collection_not_configured"
    NO_MATCHING_TOKEN = "no_matching_token"


class MessageCategory(str, Enum):
    """User-facing message category for each terminal state."""

    ACCESS_GRANTED = "access_granted"
    CONNECT_WALLET = "connect_wallet"
    ACCESS_DENIED = "access_denied"
    VERIFICATION_ERROR = "verification_error"
    CONTENT_UNAVAILABLE = "content_unavailable"


USER_MESSAGES = {
    MessageCategory.ACCESS_GRANTED: "NFT ownership verified. You now have access to this content.",
    MessageCategory.CONNECT_WALLET: "Connect your wallet to verify NFT ownership.",
    MessageCategory.ACCESS_DENIED: "You don't own an NFT from the required collection.",
    MessageCategory.VERIFICATION_ERROR: "Could not verify NFT ownership. Please try again.",
    MessageCategory.CONTENT_UNAVAILABLE: "This content is temporarily unavailable. Please try again later.",
}


class AccessDeniedError(Exception):
    """The wallet may not view the content."""

    def __init__(self, reason: DenialReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason.value)


class WalletNotConnectedError(AccessDeniedError):
    """No wallet address was supplied."""

    def __init__(self):
        super().__init__(DenialReason.WALLET_NOT_CONNECTED, "No wallet connected")


# =============================================================================
# Outcome
# =============================================================================


@dataclass(frozen=True)
class VerificationOutcome:
    """Decision returned for one verification call."""

    state: VerificationState
    content_id: str
    wallet_address: str | None = None
    reason: DenialReason | None = None
    grant: AccessGrant | None = None
    match: OwnershipMatch | None = None
    cached: bool = False

    @property
    def granted(self) -> bool:
        return self.state is VerificationState.GRANTED

    @property
    def category(self) -> MessageCategory:
        if self.state is VerificationState.GRANTED:
            return MessageCategory.ACCESS_GRANTED
        if self.state is VerificationState.DENIED:
            if self.reason is DenialReason.WALLET_NOT_CONNECTED:
                return MessageCategory.CONNECT_WALLET
            return MessageCategory.ACCESS_DENIED
        if self.state is VerificationState.CHAIN_UNAVAILABLE:
            return MessageCategory.VERIFICATION_ERROR
        return MessageCategory.CONTENT_UNAVAILABLE

    @property
    def message(self) -> str:
        return USER_MESSAGES[self.category]

    @property
    def url(self) -> str | None:
        return self.grant.url if self.grant else None

    @property
    def expires_at(self) -> datetime | None:
        return self.grant.expires_at if self.grant else None


# =============================================================================
# Grant cache
# =============================================================================


@dataclass(frozen=True)
class _CachedGrant:
    grant: AccessGrant
    target: str


class GrantCache:
    """
    In-memory cache of granted verifications keyed by (wallet, content_id).

    Each cache belongs to a single viewing session; see ContentAccessSession.

    A cached grant is only handed out again for the same target collection
    and while more than ``min_remaining_seconds`` of its lifetime is left.
    Denials are never cached.
    """

    def __init__(self, min_remaining_seconds: int | None = None):
        if min_remaining_seconds is None:
            min_remaining_seconds = settings.GRANT_CACHE_MIN_REMAINING_SECONDS
        self.min_remaining_seconds = min_remaining_seconds
        self._entries: dict[tuple[str, str], _CachedGrant] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(
        self,
        wallet_address: str,
        content_id: str,
        target: str,
        now: datetime | None = None,
    ) -> AccessGrant | None:
        key = (wallet_address, content_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.target != target or entry.grant.remaining_seconds(now) <= self.min_remaining_seconds:
            del self._entries[key]
            return None
        return entry.grant

    def put(self, wallet_address: str, content_id: str, target: str, grant: AccessGrant) -> None:
        self.drop_other_wallets(content_id, wallet_address)
        self._entries[(wallet_address, content_id)] = _CachedGrant(grant=grant, target=target)

    def drop_other_wallets(self, content_id: str, wallet_address: str) -> int:
        """Drop grants for ``content_id`` cached under any other wallet."""
        stale = [
            key for key in self._entries
            if key[1] == content_id and key[0] != wallet_address
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def invalidate_wallet(self, wallet_address: str) -> int:
        """Drop every grant cached for a wallet."""
        stale = [key for key in self._entries if key[0] == wallet_address]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()


# =============================================================================
# Orchestrator
# =============================================================================


class VerificationOrchestrator:
    """Sequences chain query, ownership resolution and access grant."""

    def __init__(
        self,
        chain: ChainQueryAdapter,
        grants: AccessGrantService,
        allow_substring_match: bool | None = None,
    ):
        self.chain = chain
        self.grants = grants
        self.allow_substring_match = allow_substring_match

    async def verify(
        self,
        wallet_address: str | None,
        collection_identifier: str | None,
        content_id: str,
        asset_path: str,
        user_id: str | None = None,
        cache: GrantCache | None = None,
    ) -> VerificationOutcome:
        """
        Decide whether a wallet may view a content item.

        Never raises for chain, storage or audit failures; every such case is
        reported through the returned outcome's state. Cancellation
        propagates and leaves no trace.

        ``cache`` is the calling session's grant cache. Without one every
        call queries the chain and issues a fresh grant.
        """
        wallet = normalize_identifier(wallet_address)
        try:
            outcome = await self._verify(wallet, collection_identifier, content_id, asset_path, user_id, cache)
        except AccessDeniedError as e:
            outcome = VerificationOutcome(
                state=VerificationState.DENIED,
                content_id=content_id,
                wallet_address=wallet,
                reason=e.reason,
            )
        except ChainUnavailableError as e:
            logger.warning(
                f"Chain unavailable for content {content_id}: {e}",
                extra={"event_type": "verification.chain_unavailable", "content_id": content_id},
            )
            outcome = VerificationOutcome(
                state=VerificationState.CHAIN_UNAVAILABLE,
                content_id=content_id,
                wallet_address=wallet,
            )
        except ContentUnavailableError:
            outcome = VerificationOutcome(
                state=VerificationState.CONTENT_UNAVAILABLE,
                content_id=content_id,
                wallet_address=wallet,
            )
        except Exception as e:
            logger.exception(
                f"Unexpected verification failure for content {content_id}: {e}",
                extra={"event_type": "verification.failed", "content_id": content_id},
            )
            outcome = VerificationOutcome(
                state=VerificationState.CHAIN_UNAVAILABLE,
                content_id=content_id,
                wallet_address=wallet,
            )

        track_verification(outcome.state.value, outcome.reason.value if outcome.reason else None)
        if outcome.state is VerificationState.DENIED:
            security_logger.info(
                "Access denied",
                extra=format_access_event(
                    event_type="verification.denied",
                    description=outcome.reason.value,
                    content_id=content_id,
                    wallet_address=wallet,
                    user_id=user_id,
                ),
            )
        return outcome

    async def _verify(
        self,
        wallet: str | None,
        collection_identifier: str | None,
        content_id: str,
        asset_path: str,
        user_id: str | None,
        cache: GrantCache | None,
    ) -> VerificationOutcome:
        # Idle
        if wallet is None:
            raise WalletNotConnectedError()
        target = normalize_identifier(collection_identifier)
        if target is None:
            raise AccessDeniedError(DenialReason.COLLECTION_NOT_CONFIGURED)

        if cache is not None:
            cache.drop_other_wallets(content_id, wallet)
            cached = cache.get(wallet, content_id, target)
            if cached is not None:
                verification_cache_hits_total.inc()
                return VerificationOutcome(
                    state=VerificationState.GRANTED,
                    content_id=content_id,
                    wallet_address=wallet,
                    grant=cached,
                    cached=True,
                )

        # Resolving
        records = await self.chain.fetch_tokens(wallet)
        match = find_match(records, target, self.allow_substring_match)
        if match is None:
            raise AccessDeniedError(DenialReason.NO_MATCHING_TOKEN)

        # Granted
        grant = await self.grants.grant(asset_path, content_id, wallet, user_id)
        if cache is not None:
            cache.put(wallet, content_id, target, grant)
        return VerificationOutcome(
            state=VerificationState.GRANTED,
            content_id=content_id,
            wallet_address=wallet,
            grant=grant,
            match=match,
        )


# =============================================================================
# Per-view session
# =============================================================================


class ContentAccessSession:
    """
    Verification state for one open view of one content item.

    ``verify`` runs the orchestrator in a task so ``close`` (the view going
    away) or a wallet change can cancel it. Once closed, results are dropped
    and nothing on the session changes.

    The session owns its grant cache, so a repeat ``verify`` for the same
    wallet reuses this viewer's grant and no other viewer ever sees it.
    """

    def __init__(
        self,
        orchestrator: VerificationOrchestrator,
        content_id: str,
        collection_identifier: str | None,
        asset_path: str,
        user_id: str | None = None,
        cache: GrantCache | None = None,
    ):
        self.orchestrator = orchestrator
        self.content_id = content_id
        self.collection_identifier = collection_identifier
        self.asset_path = asset_path
        self.user_id = user_id
        self.cache = cache if cache is not None else GrantCache()

        self.wallet_address: str | None = None
        self.has_access = False
        self.outcome: VerificationOutcome | None = None
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _cancel_in_flight(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def verify(self, wallet_address: str | None) -> VerificationOutcome | None:
        """
        Verify the given wallet for this content.

        Returns:
            The outcome, or None if the session was closed or the call was
            superseded before it finished
        """
        if self._closed:
            return None

        self._cancel_in_flight()
        self.wallet_address = normalize_identifier(wallet_address)

        task = asyncio.create_task(
            self.orchestrator.verify(
                wallet_address,
                self.collection_identifier,
                self.content_id,
                self.asset_path,
                self.user_id,
                cache=self.cache,
            )
        )
        self._task = task
        try:
            outcome = await task
        except asyncio.CancelledError:
            if self._closed or task is not self._task:
                return None
            raise
        else:
            if self._closed or task is not self._task:
                return None
            self.outcome = outcome
            self.has_access = outcome.granted
            return outcome
        finally:
            if self._task is task:
                self._task = None

    def wallet_changed(self, new_wallet_address: str | None) -> None:
        """Drop access held for the previous wallet."""
        if self._closed:
            return
        new_wallet = normalize_identifier(new_wallet_address)
        if new_wallet == self.wallet_address:
            return

        self._cancel_in_flight()
        if self.wallet_address is not None:
            self.cache.invalidate_wallet(self.wallet_address)
        self.wallet_address = new_wallet
        self.has_access = False
        self.outcome = None

    def close(self) -> None:
        """Cancel any in-flight verification and freeze the session."""
        self._closed = True
        self._cancel_in_flight()
        self.cache.clear()
