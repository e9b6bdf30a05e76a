"""
Pytest configuration and fixtures for Token Gate tests.

Provides common fixtures for:
- Test database setup (in-memory for unit tests, file-backed for API tests)
- Storage root with a gated asset
- Orchestrator wiring over mock chain adapters
- Test client with dependency overrides
"""

import os

# Must be set before tokengate.core.config is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CHAIN_ADAPTER", "mock")
os.environ.setdefault("STORAGE_SIGNING_KEY", "unit-suite-storage-signing-key-0123456789")

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool, StaticPool

from tokengate.api.deps import get_orchestrator, get_session_factory, get_storage
from tokengate.audit.service import AccessLogService
from tokengate.core.rate_limit import limiter
from tokengate.db.session import Base, get_db
from tokengate.integrations.adapters.local_storage import LocalSignedUrlStorage
from tokengate.integrations.adapters.mock import (
    InMemoryAccessLogStore,
    InMemoryViewCounter,
    MockChainAdapter,
)
from tokengate.main import app
from tokengate.models.content import Content, ContentType
from tokengate.services.access_grant import AccessGrantService
from tokengate.services.chain_query import ChainQueryAdapter
from tokengate.services.content_service import ContentService
from tokengate.services.verification import VerificationOrchestrator

GATED_COLLECTION = "0xbb"
ASSET_PATH = "assets/guide.pdf"
ASSET_BYTES = b"%PDF-1.4 gated asset\n"
WALLET = "0xa11ce"
OTHER_WALLET = "0xb0b"


def owned_token(collection_id: str = GATED_COLLECTION) -> dict:
    """Indexer ownership record for a token in ``collection_id``."""
    return {
        "token_data_id": f"0xc0ffee::Collection {collection_id}::Token #1",
        "current_token_data": {
            "current_collection": {
                "collection_id": collection_id,
                "collection_name": f"Collection {collection_id}",
                "creator_address": "0xc0ffee",
            },
        },
    }


# =============================================================================
# Database Fixtures
# =============================================================================


# Use SQLite for tests (faster, no external dependencies)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def content(db_session) -> Content:
    """A gated PDF in the test database."""
    item = Content(
        creator_id="creator-1",
        title="Exclusive Aptos Development Guide",
        content_type=ContentType.PDF,
        nft_collection_address=GATED_COLLECTION,
        storage_path=ASSET_PATH,
    )
    db_session.add(item)
    await db_session.commit()
    return item


@pytest.fixture(scope="function")
def file_database(tmp_path) -> Generator[tuple, None, None]:
    """
    File-backed SQLite database for API tests.

    Returns (sync_engine, async_session_factory). The async side uses NullPool
    so connections are opened on whichever event loop runs the request.
    """
    db_path = tmp_path / "tokengate.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)

    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    yield sync_engine, factory

    sync_engine.dispose()


@pytest.fixture(scope="function")
def stored_content(file_database) -> Content:
    """A gated PDF in the file-backed database."""
    sync_engine, _ = file_database
    with Session(sync_engine, expire_on_commit=False) as session:
        item = Content(
            creator_id="creator-1",
            title="Exclusive Aptos Development Guide",
            content_type=ContentType.PDF,
            nft_collection_address=GATED_COLLECTION,
            storage_path=ASSET_PATH,
        )
        session.add(item)
        session.commit()
        return item


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def storage_root(tmp_path) -> Path:
    root = tmp_path / "storage"
    asset = root / ASSET_PATH
    asset.parent.mkdir(parents=True)
    asset.write_bytes(ASSET_BYTES)
    return root


@pytest.fixture(scope="function")
def storage(storage_root) -> LocalSignedUrlStorage:
    return LocalSignedUrlStorage(storage_root)


# =============================================================================
# Orchestrator Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def chain_adapter() -> MockChainAdapter:
    """Chain with no token store and one gated token in the indexer."""
    return MockChainAdapter(resources=[], owned_tokens=[owned_token()])


@pytest.fixture(scope="function")
def view_counter() -> InMemoryViewCounter:
    return InMemoryViewCounter()


@pytest.fixture(scope="function")
def access_log() -> InMemoryAccessLogStore:
    return InMemoryAccessLogStore()


@pytest.fixture(scope="function")
def orchestrator(chain_adapter, storage, view_counter, access_log) -> VerificationOrchestrator:
    return VerificationOrchestrator(
        chain=ChainQueryAdapter(chain_adapter, timeout=1.0),
        grants=AccessGrantService(storage, view_counter, access_log),
    )


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def api_orchestrator(chain_adapter, storage, file_database) -> VerificationOrchestrator:
    """Orchestrator backed by the file database, as wired in production."""
    _, factory = file_database
    return VerificationOrchestrator(
        chain=ChainQueryAdapter(chain_adapter, timeout=1.0),
        grants=AccessGrantService(
            storage,
            view_counter=ContentService(factory),
            access_log=AccessLogService(factory),
        ),
    )


@pytest.fixture(scope="function")
def client(file_database, api_orchestrator, storage) -> Generator[TestClient, None, None]:
    """Create test client with database, storage and orchestrator overrides."""
    _, factory = file_database

    async def _override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_orchestrator] = lambda: api_orchestrator
    app.dependency_overrides[get_storage] = lambda: storage
    limiter.enabled = False

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
    limiter.enabled = True
