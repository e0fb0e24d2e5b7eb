"""Pydantic schemas for API responses."""

from typing import Optional

from pydantic import BaseModel, Field


class WebhookAck(BaseModel):
    """Acknowledgement for a processed or ignored delivery."""

    status: str = Field(..., description="'ok' or 'ignored'")
    event: str = Field(..., description="Event kind as received")
    record_id: Optional[int] = Field(
        None, description="Internal id of the customer record touched"
    )


class WebhookError(BaseModel):
    """Structured error body for rejected deliveries."""

    status: str = "error"
    error: str = Field(
        ...,
        description=(
            "missing_signature, invalid_signature, malformed, "
            "missing_field, store_error or internal"
        ),
    )
    message: str
    field: Optional[str] = Field(None, description="Missing field, when relevant")


class HealthStatus(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    database: str
