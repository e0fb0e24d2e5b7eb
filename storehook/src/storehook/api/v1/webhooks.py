"""Platform webhook endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from storehook.api.dependencies import get_ingestor
from storehook.api.schemas import WebhookAck, WebhookError
from storehook.config import get_settings
from storehook.ingestion import WebhookIngestor

router = APIRouter()
settings = get_settings()


@router.post(
    "/platform",
    response_model=WebhookAck,
    responses={
        400: {"model": WebhookError},
        401: {"model": WebhookError},
        500: {"model": WebhookError},
    },
)
async def receive_platform_webhook(
    request: Request,
    ingestor: WebhookIngestor = Depends(get_ingestor),
) -> JSONResponse:
    """Receive a platform event notification.

    The body is read raw so the signature is checked against the exact bytes
    that were signed.
    """
    body = await request.body()
    signature = request.headers.get(settings.platform.signature_header)

    result = await ingestor.handle(body, signature)

    return JSONResponse(content=result.body, status_code=result.status_code)
