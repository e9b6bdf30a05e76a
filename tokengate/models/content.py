"""Gated content models."""

from enum import Enum

from sqlalchemy import Enum as SQLEnum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tokengate.db.session import Base
from tokengate.models.base import TimestampMixin, UUIDMixin


class ContentType(str, Enum):
    """Kind of gated asset."""

    PDF = "pdf"
    VIDEO = "video"


class Content(Base, UUIDMixin, TimestampMixin):
    """
    A creator-published asset gated behind NFT ownership.

    The asset itself lives in storage at ``storage_path``; viewers only ever
    receive a signed, expiring URL to it.
    """

    __tablename__ = "contents"

    creator_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    content_type: Mapped[ContentType] = mapped_column(
        SQLEnum(ContentType, name="content_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )

    # Collection address/ID (or, for older content, a creator address) supplied
    # by the creator. Stored exactly as entered; normalized only when compared.
    nft_collection_address: Mapped[str] = mapped_column(String(255), nullable=False)

    # Path relative to the storage root
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)

    # Only ever changed through an atomic UPDATE ... SET views = views + 1
    views: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
