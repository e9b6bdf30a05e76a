"""Content lookups and the shared view counter."""

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokengate.integrations.interfaces.base import AuditWriteError, ViewCounterStore
from tokengate.models.content import Content


class ContentService(ViewCounterStore):
    """
    Reads gated content records and maintains their view counters.

    Each operation runs in its own short transaction, so a failed counter
    update never affects the caller's session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_content(self, content_id: str) -> Content | None:
        async with self.session_factory() as session:
            result = await session.execute(select(Content).where(Content.id == content_id))
            return result.scalar_one_or_none()

    async def increment_counter(self, content_id: str) -> int:
        """
        Increment ``views`` with a single ``UPDATE ... SET views = views + 1``.

        Raises:
            AuditWriteError: If the content row is missing or the update fails
        """
        stmt = (
            update(Content)
            .where(Content.id == content_id)
            .values(views=Content.views + 1)
            .returning(Content.views)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                views = result.scalar_one_or_none()
                if views is None:
                    await session.rollback()
                    raise AuditWriteError(f"Content not found: {content_id}")
                await session.commit()
        except SQLAlchemyError as e:
            raise AuditWriteError(f"Failed to increment views for {content_id}: {e}") from e

        return views
