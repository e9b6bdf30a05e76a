"""Local filesystem storage with signed, expiring download URLs."""

import logging
from pathlib import Path

from tokengate.core.config import settings
from tokengate.core.security import generate_signed_url
from tokengate.integrations.interfaces.base import SignedUrl, SignedUrlProvider, StorageError

logger = logging.getLogger("security.storage")


def resolve_asset_path(root: Path, path: str) -> Path:
    """
    Resolve an asset path inside the storage root.

    Raises:
        StorageError: If the path escapes the root or does not name a file
    """
    root = root.resolve()
    candidate = (root / path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        raise StorageError(f"Asset path escapes storage root: {path}")
    if not candidate.is_file():
        raise StorageError(f"Asset not found: {path}")
    return candidate


class LocalSignedUrlStorage(SignedUrlProvider):
    """Serves assets from ``STORAGE_ROOT`` through JWT-signed URLs."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.STORAGE_ROOT)

    async def create_signed_url(
        self,
        path: str,
        ttl_seconds: int,
        issued_to: str | None = None,
    ) -> SignedUrl:
        resolve_asset_path(self.root, path)

        try:
            url, expires_at = generate_signed_url(path, expires_in=ttl_seconds, issued_to=issued_to)
        except Exception as e:
            raise StorageError(f"Failed to sign asset URL: {e}") from e

        logger.info(
            "Signed URL issued",
            extra={
                "event_type": "storage.signed_url_issued",
                "resource_path": path,
                "issued_to": issued_to,
                "expires_at": expires_at.isoformat(),
            },
        )
        return SignedUrl(url=url, expires_at=expires_at)

    def open_path(self, path: str) -> Path:
        """Return the on-disk path for a verified asset reference."""
        return resolve_asset_path(self.root, path)
