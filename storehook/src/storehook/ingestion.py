"""Webhook ingestion: verify, classify, enrich, reconcile."""

import asyncio
from typing import Any, Dict, NamedTuple, Optional

import structlog

from storehook.events import (
    ClassifiedEvent,
    CustomerProfile,
    EnrichmentResult,
    EventClassifier,
    EventKind,
)
from storehook.integrations.platform import PlatformClient
from storehook.reconciliation.store import ReconciliationStore
from storehook.utils.errors import FetchError, UnauthorizedError
from storehook.utils.exceptions import (
    InvalidSignatureError,
    MissingSignatureError,
    StoreHookException,
)
from storehook.validation.signature import SignatureVerifier

logger = structlog.get_logger(__name__)


class IngestResult(NamedTuple):
    """Status code and JSON body to answer the delivery with."""

    status_code: int
    body: Dict[str, Any]


def needs_customer_lookup(event: ClassifiedEvent) -> bool:
    """Order events that arrive without any identifying profile data."""
    profile = event.profile
    return event.kind.is_order and not (
        profile.email or profile.first_name or profile.last_name
    )


def needs_order_lookup(event: ClassifiedEvent) -> bool:
    """Order events whose amount or purchase time is missing."""
    order = event.order
    return (
        event.kind.is_order
        and order is not None
        and (not order.total_amount or not order.purchased_at)
    )


class WebhookIngestor:
    """Processes one webhook delivery end to end.

    Collaborators are injected; the ingestor keeps no per-delivery state, so
    one instance serves concurrent deliveries.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        classifier: EventClassifier,
        store: ReconciliationStore,
        client: Optional[PlatformClient] = None,
        webhook_secret: Optional[str] = None,
        allow_unsigned: bool = False,
        enrichment_enabled: bool = True,
        enrichment_timeout: float = 10.0,
    ) -> None:
        self.verifier = verifier
        self.classifier = classifier
        self.store = store
        self.client = client
        self.webhook_secret = webhook_secret
        self.allow_unsigned = allow_unsigned
        self.enrichment_enabled = enrichment_enabled
        self.enrichment_timeout = enrichment_timeout

        if not webhook_secret:
            logger.warning(
                "Webhook secret not configured",
                unsigned_deliveries="accepted" if allow_unsigned else "rejected",
            )

    def authenticate(self, body: bytes, signature: Optional[str]) -> None:
        """
        Gate a delivery on its signature.

        Raises:
            MissingSignatureError: No signature header was sent
            InvalidSignatureError: The signature does not match
        """
        if not self.webhook_secret and self.allow_unsigned:
            logger.warning("Accepting unverified webhook delivery")
            return

        if signature is None or not signature.strip():
            raise MissingSignatureError()

        if not self.verifier.verify(body, signature, self.webhook_secret):
            raise InvalidSignatureError()

    async def enrich(self, event: ClassifiedEvent) -> Optional[EnrichmentResult]:
        """
        Fetch missing details for an incomplete event.

        Lookup failures and timeouts degrade to None.
        """
        if not (self.enrichment_enabled and self.client):
            return None

        lookup_customer = needs_customer_lookup(event)
        lookup_order = needs_order_lookup(event)
        if not (lookup_customer or lookup_order):
            return None

        try:
            return await asyncio.wait_for(
                self._fetch(event, lookup_customer, lookup_order),
                timeout=self.enrichment_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Enrichment timed out, continuing without it",
                external_customer_id=event.external_customer_id,
                timeout=self.enrichment_timeout,
            )
        except UnauthorizedError as exc:
            logger.error(
                "Platform rejected credentials during enrichment",
                alert=True,
                status_code=exc.status_code,
                external_customer_id=event.external_customer_id,
            )
        except FetchError as exc:
            logger.warning(
                "Enrichment failed, continuing without it",
                error_type=type(exc).__name__,
                status_code=exc.status_code,
                retryable=exc.is_retryable,
                external_customer_id=event.external_customer_id,
            )
        return None

    async def _fetch(
        self, event: ClassifiedEvent, lookup_customer: bool, lookup_order: bool
    ) -> EnrichmentResult:
        profile = CustomerProfile()
        order = None

        if lookup_order:
            detail = await self.client.fetch_order(event.order.id)
            order = detail.order
            if detail.customer_id == event.external_customer_id:
                profile = detail.profile
            else:
                logger.warning(
                    "Fetched order belongs to another customer, ignoring its profile",
                    order_id=order.id,
                    external_customer_id=event.external_customer_id,
                    order_customer_id=detail.customer_id,
                )

        if lookup_customer and not (profile.email or profile.first_name):
            customer = await self.client.fetch_customer(event.external_customer_id)
            profile = customer.profile

        return EnrichmentResult(profile=profile, order=order)

    async def handle(self, body: bytes, signature: Optional[str]) -> IngestResult:
        """
        Process one delivery; never raises.

        Args:
            body: Exact raw request body
            signature: Signature header value, None when absent

        Returns:
            Status code and JSON body for the platform
        """
        try:
            self.authenticate(body, signature)
            event = self.classifier.classify(body)

            if event.kind is EventKind.UNKNOWN:
                logger.info("Ignoring unhandled webhook event", event=event.raw_kind)
                return IngestResult(200, {"status": "ignored", "event": event.raw_kind})

            log = logger.bind(
                event=event.kind.value,
                external_customer_id=event.external_customer_id,
            )

            enrichment = await self.enrich(event)
            record_id = await self.store.upsert(event, enrichment)

            log.info("Webhook processed", record_id=record_id, enriched=enrichment is not None)
            return IngestResult(
                200,
                {"status": "ok", "event": event.kind.value, "record_id": record_id},
            )

        except StoreHookException as exc:
            log_method = logger.error if exc.status_code >= 500 else logger.warning
            log_method(
                "Webhook delivery rejected",
                error=exc.code,
                status_code=exc.status_code,
                detail=exc.message,
            )
            return IngestResult(exc.status_code, exc.to_dict())

        except Exception as exc:
            logger.error("Unexpected error processing webhook", exc_info=exc)
            return IngestResult(
                500,
                {
                    "status": "error",
                    "error": "internal",
                    "message": "An unexpected error occurred",
                },
            )
