"""Signed asset download endpoint.

The token in the path is the only credential: anyone holding an unexpired
URL can fetch the asset. Expiry is enforced here on every request regardless
of what the client cached.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from tokengate.api.deps import StorageDep
from tokengate.core.errors import NotFoundError, SignedUrlError
from tokengate.core.security import verify_signed_url
from tokengate.integrations.interfaces.base import StorageError

router = APIRouter()

logger = logging.getLogger("security.storage")

SECURE_ASSET_HEADERS = {
    # Prevent caching in shared caches (CDNs, proxies)
    "Cache-Control": "private, no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Content-Type-Options": "nosniff",
    "Content-Disposition": "inline",
    # Prevent token leakage via Referer header
    "Referrer-Policy": "no-referrer",
}


@router.get("/signed/{token}")
async def get_signed_asset(token: str, storage: StorageDep):
    """
    Serve a gated asset through a signed URL.

    Returns 403 for a tampered, expired or wrong-type token and 404 when the
    asset has since disappeared from storage.
    """
    payload = verify_signed_url(token)
    if payload is None:
        logger.info(
            "Rejected signed URL",
            extra={"event_type": "storage.signed_url_rejected"},
        )
        raise SignedUrlError()

    try:
        path = storage.open_path(payload.resource_path)
    except StorageError:
        raise NotFoundError("Asset")

    logger.info(
        "Signed URL redeemed",
        extra={
            "event_type": "storage.signed_url_redeemed",
            "resource_path": payload.resource_path,
            "jti": payload.jti,
            "issued_to": payload.issued_to,
        },
    )
    return FileResponse(path, headers=SECURE_ASSET_HEADERS)
