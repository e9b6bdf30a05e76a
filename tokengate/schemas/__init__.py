"""Pydantic schemas for API validation."""

from tokengate.schemas.common import BaseSchema, ErrorResponse, HealthResponse
from tokengate.schemas.verification import VerifyRequest, VerifyResponse

__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "HealthResponse",
    "VerifyRequest",
    "VerifyResponse",
]
