"""Database models for Token Gate."""

from tokengate.models.access_log import ContentAccessLog
from tokengate.models.content import Content, ContentType

__all__ = [
    "Content",
    "ContentType",
    "ContentAccessLog",
]
