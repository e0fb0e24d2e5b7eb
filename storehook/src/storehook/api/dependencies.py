"""API dependencies and component wiring."""

from typing import Optional

from fastapi import Request

from storehook.config import Settings, get_settings
from storehook.database.connection import DatabaseManager, get_db_manager
from storehook.events import EventClassifier
from storehook.ingestion import WebhookIngestor
from storehook.integrations.platform import PlatformClient
from storehook.reconciliation.store import ReconciliationStore
from storehook.validation.signature import SignatureVerifier


def build_ingestor(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None,
    client: Optional[PlatformClient] = None,
) -> WebhookIngestor:
    """Assemble the ingestion pipeline from settings."""
    settings = settings or get_settings()
    platform = settings.platform

    if client is None and platform.enrichment_enabled and platform.access_token:
        client = PlatformClient(
            access_token=platform.access_token,
            base_url=platform.base_url,
            timeout=platform.request_timeout,
            default_currency=platform.default_currency,
        )

    return WebhookIngestor(
        verifier=SignatureVerifier(),
        classifier=EventClassifier(default_currency=platform.default_currency),
        store=ReconciliationStore(
            db_manager or get_db_manager(),
            default_currency=platform.default_currency,
        ),
        client=client,
        webhook_secret=platform.webhook_secret,
        allow_unsigned=platform.allow_unsigned,
        enrichment_enabled=platform.enrichment_enabled,
        enrichment_timeout=platform.enrichment_timeout,
    )


def get_ingestor(request: Request) -> WebhookIngestor:
    """Ingestor attached to the running application, built on first use."""
    ingestor = getattr(request.app.state, "ingestor", None)
    if ingestor is None:
        ingestor = build_ingestor()
        request.app.state.ingestor = ingestor
    return ingestor
