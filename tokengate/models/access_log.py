"""Content access log model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tokengate.db.session import Base
from tokengate.models.base import UUIDMixin


class ContentAccessLog(Base, UUIDMixin):
    """
    One successful access grant.

    IMMUTABILITY ENFORCEMENT:
    - DB-level trigger blocks UPDATE and DELETE operations (see migration 002)
    - No updated_at column - entries are write-once
    - Deleting the owning content is handled outside this service
    """

    __tablename__ = "content_access_logs"

    content_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contents.id"), nullable=False, index=True
    )
    # Viewer account from the upstream session layer, if any
    user_id: Mapped[str | None] = mapped_column(String(36), index=True)
    wallet_address: Mapped[str] = mapped_column(String(130), nullable=False, index=True)

    accessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_content_access_logs_content_accessed", "content_id", "accessed_at"),
    )
