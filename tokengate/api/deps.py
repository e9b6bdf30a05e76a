"""API dependencies for dependency injection."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokengate.audit.service import AccessLogService
from tokengate.db.session import AsyncSessionLocal, get_db
from tokengate.integrations.adapters.factory import get_adapter
from tokengate.integrations.adapters.local_storage import LocalSignedUrlStorage
from tokengate.services.access_grant import AccessGrantService
from tokengate.services.chain_query import ChainQueryAdapter
from tokengate.services.content_service import ContentService
from tokengate.services.verification import VerificationOrchestrator


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for services that manage their own transactions."""
    return AsyncSessionLocal


def get_content_service(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ContentService:
    return ContentService(session_factory)


@lru_cache
def get_storage() -> LocalSignedUrlStorage:
    return LocalSignedUrlStorage()


@lru_cache
def get_orchestrator() -> VerificationOrchestrator:
    """
    Process-wide orchestrator.

    Holds no per-viewer state. Each request is its own viewing session, so
    every granted POST issues a fresh URL and writes its own access log row.
    """
    return VerificationOrchestrator(
        chain=ChainQueryAdapter(get_adapter()),
        grants=AccessGrantService(
            storage=get_storage(),
            view_counter=ContentService(AsyncSessionLocal),
            access_log=AccessLogService(AsyncSessionLocal),
        ),
    )


async def get_viewer_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-ID", max_length=36)] = None,
) -> str | None:
    """
    Viewer account id forwarded by the upstream session layer.

    Authentication happens upstream; this service only records the id.
    """
    return x_user_id or None


# Type aliases for commonly used dependencies
DBSession = Annotated[AsyncSession, Depends(get_db)]
ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
OrchestratorDep = Annotated[VerificationOrchestrator, Depends(get_orchestrator)]
StorageDep = Annotated[LocalSignedUrlStorage, Depends(get_storage)]
ViewerId = Annotated[str | None, Depends(get_viewer_id)]
