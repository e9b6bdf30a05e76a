"""Signed URL utilities for gated asset access."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from tokengate.core.config import settings

ASSET_URL_TOKEN_TYPE = "asset_url"
SIGNED_ASSET_PATH = "/storage/signed/"


def generate_signed_url(
    resource_path: str,
    expires_in: int,
    issued_to: str | None = None,
) -> tuple[str, datetime]:
    """Generate a time-limited signed URL for a stored asset.

    Security model:
    - This is a BEARER TOKEN - anyone with the URL can fetch the asset
    - Security relies on the TTL to limit the exposure window
    - issued_to (the wallet) is embedded for audit logging only
    - URLs should not be logged, shared, or exposed in referrer headers
    - Uses dedicated STORAGE_SIGNING_KEY
    - Includes jti (JWT ID) so individual links can be traced

    Returns:
        Tuple of (signed_url, expires_at).
    """
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    jti = secrets.token_urlsafe(16)

    to_encode: dict[str, Any] = {
        "exp": expires_at,
        "resource": resource_path,
        "type": ASSET_URL_TOKEN_TYPE,
        "jti": jti,
    }
    if issued_to:
        to_encode["sub"] = issued_to

    token = jwt.encode(
        to_encode,
        settings.STORAGE_SIGNING_KEY,
        algorithm=settings.STORAGE_SIGNING_ALGORITHM,
    )
    url = f"{settings.PUBLIC_BASE_URL}{settings.API_V1_PREFIX}{SIGNED_ASSET_PATH}{token}"
    return url, expires_at


class SignedUrlPayload:
    """Payload from a verified signed URL (bearer token).

    Note: issued_to is for audit logging only - access is NOT restricted to it.
    """

    def __init__(
        self,
        resource_path: str,
        jti: str | None = None,
        issued_to: str | None = None,
    ):
        self.resource_path = resource_path
        self.jti = jti
        self.issued_to = issued_to


def decode_asset_token(token: str) -> dict[str, Any] | None:
    """Decode and validate an asset URL token.

    Expired tokens and bad signatures both come back as None.
    """
    try:
        payload = jwt.decode(
            token,
            settings.STORAGE_SIGNING_KEY,
            algorithms=[settings.STORAGE_SIGNING_ALGORITHM],
        )
        return payload
    except JWTError:
        return None


def verify_signed_url(token: str) -> SignedUrlPayload | None:
    """Verify a signed URL token and return the payload if valid.

    This validates:
    - Token signature (using STORAGE_SIGNING_KEY)
    - Token expiration
    - Token type (asset_url)

    Returns:
        SignedUrlPayload, or None if invalid.
    """
    payload = decode_asset_token(token)

    if not payload or payload.get("type") != ASSET_URL_TOKEN_TYPE:
        return None

    resource_path = payload.get("resource")
    if not resource_path or not isinstance(resource_path, str):
        return None

    return SignedUrlPayload(
        resource_path=resource_path,
        jti=payload.get("jti"),
        issued_to=payload.get("sub"),
    )
