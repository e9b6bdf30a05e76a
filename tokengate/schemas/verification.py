"""Verification request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from tokengate.schemas.common import BaseSchema
from tokengate.services.verification import (
    DenialReason,
    MessageCategory,
    VerificationOutcome,
    VerificationState,
)


class VerifyRequest(BaseModel):
    """Wallet to verify. Null means no wallet is connected."""

    wallet_address: str | None = Field(default=None, max_length=130)


class VerifyResponse(BaseSchema):
    """Verification decision."""

    state: VerificationState
    url: str | None = None  # Signed asset URL, only when granted
    expires_at: datetime | None = None
    reason: DenialReason | None = None
    category: MessageCategory
    message: str

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome) -> "VerifyResponse":
        return cls(
            state=outcome.state,
            url=outcome.url,
            expires_at=outcome.expires_at,
            reason=outcome.reason,
            category=outcome.category,
            message=outcome.message,
        )

