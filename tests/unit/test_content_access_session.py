"""Unit tests for per-view verification sessions."""

import asyncio

import pytest

from tokengate.integrations.adapters.local_storage import LocalSignedUrlStorage
from tokengate.integrations.adapters.mock import (
    InMemoryAccessLogStore,
    InMemoryViewCounter,
    MockChainAdapter,
)
from tokengate.services.access_grant import AccessGrantService
from tokengate.services.chain_query import ChainQueryAdapter
from tokengate.services.verification import (
    ContentAccessSession,
    GrantCache,
    VerificationOrchestrator,
    VerificationState,
)

CONTENT_ID = "content-1"
ASSET = "assets/guide.pdf"
OWNED = {"current_token_data": {"current_collection": {"collection_id": "0xbb"}}}


@pytest.fixture
def slow_chain() -> MockChainAdapter:
    return MockChainAdapter(resources=[], owned_tokens=[OWNED], delay=0.2)


@pytest.fixture
def counter() -> InMemoryViewCounter:
    return InMemoryViewCounter()


@pytest.fixture
def log() -> InMemoryAccessLogStore:
    return InMemoryAccessLogStore()


class SlowStorage(LocalSignedUrlStorage):
    """Local storage whose create_signed_url stalls before signing."""

    def __init__(self, root):
        super().__init__(root)
        self.entered = asyncio.Event()
        self.issued = 0

    async def create_signed_url(self, path, ttl_seconds, issued_to=None):
        self.entered.set()
        await asyncio.sleep(5)
        signed = await super().create_signed_url(path, ttl_seconds, issued_to)
        self.issued += 1
        return signed


@pytest.fixture
def slow_orchestrator(slow_chain, storage, counter, log) -> VerificationOrchestrator:
    return VerificationOrchestrator(
        chain=ChainQueryAdapter(slow_chain, timeout=5.0),
        grants=AccessGrantService(storage, counter, log),
    )


@pytest.fixture
def session(slow_orchestrator) -> ContentAccessSession:
    return ContentAccessSession(
        slow_orchestrator, CONTENT_ID, "0xbb", ASSET, cache=GrantCache(min_remaining_seconds=60)
    )


class TestVerify:
    @pytest.mark.asyncio
    async def test_granted_session_holds_access(self, session):
        outcome = await session.verify("0xA11CE")

        assert outcome.state is VerificationState.GRANTED
        assert session.has_access is True
        assert session.wallet_address == "0xa11ce"
        assert session.outcome is outcome

    @pytest.mark.asyncio
    async def test_disconnected_wallet_is_denied(self, session, slow_chain):
        outcome = await session.verify(None)

        assert outcome.state is VerificationState.DENIED
        assert session.has_access is False
        assert sum(slow_chain.calls.values()) == 0

    @pytest.mark.asyncio
    async def test_superseded_call_returns_none(self, session, log):
        first = asyncio.create_task(session.verify("0xa11ce"))
        await asyncio.sleep(0.05)
        second = await session.verify("0xa11ce")

        assert await first is None
        assert second.granted
        assert len(log.entries) == 1

    @pytest.mark.asyncio
    async def test_repeat_verify_reuses_this_sessions_grant(self, session, slow_chain, log):
        first = await session.verify("0xa11ce")
        second = await session.verify("0xa11ce")

        assert second.cached is True
        assert second.url == first.url
        assert slow_chain.calls["get_owned_tokens"] == 1
        assert len(log.entries) == 1

    @pytest.mark.asyncio
    async def test_viewers_with_the_same_wallet_get_their_own_grants(self, slow_orchestrator, slow_chain, log):
        viewer_a = ContentAccessSession(slow_orchestrator, CONTENT_ID, "0xbb", ASSET, user_id="viewer-a")
        viewer_b = ContentAccessSession(slow_orchestrator, CONTENT_ID, "0xbb", ASSET, user_id="viewer-b")

        first = await viewer_a.verify("0xa11ce")
        second = await viewer_b.verify("0xa11ce")

        assert first.granted and second.granted
        assert second.cached is False
        assert second.url != first.url
        assert slow_chain.calls["get_owned_tokens"] == 2
        assert [e.user_id for e in log.entries] == ["viewer-a", "viewer-b"]

    @pytest.mark.asyncio
    async def test_other_viewers_wallet_does_not_evict_this_grant(self, slow_orchestrator, slow_chain):
        viewer_a = ContentAccessSession(slow_orchestrator, CONTENT_ID, "0xbb", ASSET)
        viewer_b = ContentAccessSession(slow_orchestrator, CONTENT_ID, "0xbb", ASSET)

        await viewer_a.verify("0xa11ce")
        await viewer_b.verify("0xb0b")
        again = await viewer_a.verify("0xa11ce")

        assert again.cached is True
        assert viewer_a.has_access is True


class TestClose:
    """Closing the view while a query is still running."""

    @pytest.mark.asyncio
    async def test_close_mid_query_leaves_no_trace(self, session, counter, log):
        pending = asyncio.create_task(session.verify("0xa11ce"))
        await asyncio.sleep(0.05)

        session.close()

        assert await pending is None
        assert session.closed is True
        assert session.has_access is False
        assert session.outcome is None
        assert counter.get(CONTENT_ID) == 0
        assert log.entries == ()
        assert len(session.cache) == 0

    @pytest.mark.asyncio
    async def test_close_while_url_is_being_issued_leaves_no_trace(self, storage_root, counter, log):
        storage = SlowStorage(storage_root)
        orchestrator = VerificationOrchestrator(
            chain=ChainQueryAdapter(MockChainAdapter(resources=[], owned_tokens=[OWNED]), timeout=5.0),
            grants=AccessGrantService(storage, counter, log),
        )
        session = ContentAccessSession(orchestrator, CONTENT_ID, "0xbb", ASSET)

        pending = asyncio.create_task(session.verify("0xa11ce"))
        await asyncio.wait_for(storage.entered.wait(), timeout=1.0)

        session.close()

        assert await pending is None
        assert storage.issued == 0
        assert counter.get(CONTENT_ID) == 0
        assert log.entries == ()
        assert session.has_access is False
        assert len(session.cache) == 0

    @pytest.mark.asyncio
    async def test_verify_after_close_is_a_no_op(self, session, slow_chain):
        session.close()

        assert await session.verify("0xa11ce") is None
        assert sum(slow_chain.calls.values()) == 0

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, session):
        session.close()
        session.close()
        assert session.closed


class TestWalletChanged:
    @pytest.mark.asyncio
    async def test_switch_drops_access_and_cached_grant(self, session):
        await session.verify("0xa11ce")
        assert len(session.cache) == 1

        session.wallet_changed("0xb0b")

        assert session.has_access is False
        assert session.outcome is None
        assert session.wallet_address == "0xb0b"
        assert len(session.cache) == 0

    @pytest.mark.asyncio
    async def test_disconnect_drops_access(self, session):
        await session.verify("0xa11ce")

        session.wallet_changed(None)

        assert session.has_access is False
        assert session.wallet_address is None

    @pytest.mark.asyncio
    async def test_same_wallet_keeps_access(self, session):
        await session.verify("0xa11ce")

        session.wallet_changed("0xA11CE")

        assert session.has_access is True

    @pytest.mark.asyncio
    async def test_switch_mid_query_cancels_it(self, session, counter, log):
        pending = asyncio.create_task(session.verify("0xa11ce"))
        await asyncio.sleep(0.05)

        session.wallet_changed("0xb0b")

        assert await pending is None
        assert session.has_access is False
        assert counter.get(CONTENT_ID) == 0
        assert log.entries == ()
