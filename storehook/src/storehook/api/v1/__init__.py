"""API v1 module."""

from fastapi import APIRouter

from storehook.api.v1.webhooks import router as webhooks_router

router = APIRouter(prefix="/api/v1")

router.include_router(webhooks_router, prefix="/webhooks", tags=["Webhooks"])

__all__ = ["router"]
