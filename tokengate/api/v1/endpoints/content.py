"""Gated content verification endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from tokengate.api.deps import ContentServiceDep, OrchestratorDep, ViewerId
from tokengate.core.config import settings
from tokengate.core.errors import NotFoundError
from tokengate.core.rate_limit import limiter
from tokengate.schemas.common import ErrorResponse
from tokengate.schemas.verification import VerifyRequest, VerifyResponse
from tokengate.services.verification import VerificationState

router = APIRouter()

STATE_STATUS_CODES = {
    VerificationState.GRANTED: status.HTTP_200_OK,
    VerificationState.DENIED: status.HTTP_403_FORBIDDEN,
    VerificationState.CHAIN_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    VerificationState.CONTENT_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
}

# Seconds a client should wait before retrying after a chain outage
CHAIN_RETRY_AFTER_SECONDS = 30


@router.post(
    "/{content_id}/verify",
    response_model=VerifyResponse,
    responses={
        403: {"model": VerifyResponse, "description": "Access denied"},
        404: {"model": ErrorResponse, "description": "Unknown content"},
        502: {"model": VerifyResponse, "description": "Asset URL could not be issued"},
        503: {"model": VerifyResponse, "description": "Chain unavailable, retry later"},
    },
)
@limiter.limit(settings.RATE_LIMIT_VERIFY)
async def verify_content_access(
    request: Request,
    content_id: str,
    data: VerifyRequest,
    content_service: ContentServiceDep,
    orchestrator: OrchestratorDep,
    user_id: ViewerId,
):
    """
    Verify NFT ownership for a content item and issue an access URL.

    The target collection and asset path come from the stored content record,
    never from the client.

    Status codes:
    - 200: granted, ``url`` is a signed asset URL valid for one hour
    - 403: denied (no wallet, no collection configured, or no matching token)
    - 502: ownership proven but the asset URL could not be issued
    - 503: chain unavailable; retryable, see ``Retry-After``
    """
    content = await content_service.get_content(content_id)
    if content is None:
        raise NotFoundError("Content", content_id)

    outcome = await orchestrator.verify(
        wallet_address=data.wallet_address,
        collection_identifier=content.nft_collection_address,
        content_id=content.id,
        asset_path=content.storage_path,
        user_id=user_id,
    )

    headers = {}
    if outcome.state is VerificationState.CHAIN_UNAVAILABLE:
        headers["Retry-After"] = str(CHAIN_RETRY_AFTER_SECONDS)

    return JSONResponse(
        status_code=STATE_STATUS_CODES[outcome.state],
        content=VerifyResponse.from_outcome(outcome).model_dump(mode="json"),
        headers=headers,
    )
