"""API v1 routes."""

from fastapi import APIRouter

from tokengate.api.v1.endpoints import content, storage

api_router = APIRouter()

api_router.include_router(content.router, prefix="/content", tags=["Content Access"])
api_router.include_router(storage.router, prefix="/storage", tags=["Storage"])
