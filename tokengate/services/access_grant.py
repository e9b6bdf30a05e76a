"""
Access Grant Service.

Runs after ownership has been proven. Issues the signed asset URL first; the
view counter and the access log follow as best-effort bookkeeping that can
never take the URL back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from tokengate.core.logging_config import format_access_event
from tokengate.core.metrics import access_grants_total, track_audit_write_failure
from tokengate.integrations.interfaces.base import (
    AccessLogEntry,
    AccessLogStore,
    SignedUrlProvider,
    ViewCounterStore,
)

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security.access")

# Fixed lifetime of every signed asset URL
ACCESS_GRANT_TTL_SECONDS = 3600


class ContentUnavailableError(Exception):
    """Ownership matched but the signed asset URL could not be issued."""

    pass


@dataclass(frozen=True)
class AccessGrant:
    """A freshly issued, time-limited URL for a gated asset. Never persisted."""

    url: str
    asset_path: str
    expires_at: datetime

    def remaining_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (self.expires_at - now).total_seconds()


class AccessGrantService:
    """Issues access grants and records them."""

    def __init__(
        self,
        storage: SignedUrlProvider,
        view_counter: ViewCounterStore,
        access_log: AccessLogStore,
        ttl_seconds: int = ACCESS_GRANT_TTL_SECONDS,
    ):
        self.storage = storage
        self.view_counter = view_counter
        self.access_log = access_log
        self.ttl_seconds = ttl_seconds

    async def grant(
        self,
        asset_path: str,
        content_id: str,
        wallet_address: str,
        user_id: str | None = None,
    ) -> AccessGrant:
        """
        Issue a signed URL, then bump the view counter and append a log entry.

        Args:
            asset_path: Asset path relative to the storage root
            content_id: Content being viewed
            wallet_address: Normalized wallet that proved ownership
            user_id: Viewer account, if the session layer supplied one

        Returns:
            AccessGrant

        Raises:
            ContentUnavailableError: If the signed URL could not be issued.
                Nothing is counted or logged in that case.
        """
        try:
            signed = await self.storage.create_signed_url(
                asset_path, self.ttl_seconds, issued_to=wallet_address
            )
        except Exception as e:
            logger.error(
                f"Signed URL issuance failed for content {content_id}: {e}",
                extra={"event_type": "grant.signed_url_failed", "content_id": content_id},
            )
            raise ContentUnavailableError(f"Could not issue asset URL for {content_id}") from e

        grant = AccessGrant(url=signed.url, asset_path=asset_path, expires_at=signed.expires_at)
        access_grants_total.inc()

        try:
            await self.view_counter.increment_counter(content_id)
        except Exception as e:
            track_audit_write_failure("view_counter")
            logger.warning(
                f"View counter update failed: {e}",
                extra={"event_type": "grant.view_counter_failed", "content_id": content_id},
            )

        entry = AccessLogEntry(
            content_id=content_id,
            wallet_address=wallet_address,
            accessed_at=datetime.now(timezone.utc),
            user_id=user_id,
        )
        try:
            await self.access_log.append(entry)
        except Exception as e:
            track_audit_write_failure("access_log")
            logger.warning(
                f"Access log write failed: {e}",
                extra={"event_type": "grant.access_log_failed", "content_id": content_id},
            )

        security_logger.info(
            "Access granted",
            extra=format_access_event(
                event_type="verification.granted",
                description="Signed asset URL issued",
                content_id=content_id,
                wallet_address=wallet_address,
                user_id=user_id,
                metadata={"expires_at": grant.expires_at.isoformat()},
            ),
        )
        return grant
