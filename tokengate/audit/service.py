"""Access log service."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokengate.integrations.interfaces.base import AccessLogEntry, AccessLogStore, AuditWriteError
from tokengate.models.access_log import ContentAccessLog


class AccessLogService(AccessLogStore):
    """
    Service for recording and querying content access logs.

    Entries are append-only. The table carries triggers that reject UPDATE
    and DELETE, and this service never issues either.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def append(self, entry: AccessLogEntry) -> None:
        """
        Write one access log entry in its own transaction.

        Raises:
            AuditWriteError: If the insert fails
        """
        log_entry = ContentAccessLog(
            content_id=entry.content_id,
            user_id=entry.user_id,
            wallet_address=entry.wallet_address,
            accessed_at=entry.accessed_at,
        )
        try:
            async with self.session_factory() as session:
                session.add(log_entry)
                await session.commit()
        except SQLAlchemyError as e:
            raise AuditWriteError(f"Failed to write access log for {entry.content_id}: {e}") from e

    async def list_for_content(self, content_id: str, limit: int = 100) -> list[AccessLogEntry]:
        """Get access log entries for a content item, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ContentAccessLog)
                .where(ContentAccessLog.content_id == content_id)
                .order_by(ContentAccessLog.accessed_at.desc())
                .limit(limit)
            )
            rows = result.scalars().all()

        return [
            AccessLogEntry(
                content_id=row.content_id,
                wallet_address=row.wallet_address,
                accessed_at=row.accessed_at,
                user_id=row.user_id,
            )
            for row in rows
        ]
