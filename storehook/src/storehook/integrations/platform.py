"""E-commerce platform REST API client used for enrichment."""

from typing import Any, Dict, Optional, Union

import httpx
import structlog

from storehook.config import get_settings
from storehook.events import (
    CustomerDetail,
    OrderDetail,
    extract_order,
    extract_profile,
)
from storehook.utils.errors import RejectedError
from storehook.validation.sanitizers import sanitize_external_api_response, sanitize_text

from .base import BaseAPIClient

logger = structlog.get_logger(__name__)

EntityId = Union[int, str]


class PlatformClient(BaseAPIClient):
    """Platform REST API client for orders, customers and webhook setup."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        default_currency: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize platform API client.

        Args:
            access_token: Bearer token for the merchant's store
            base_url: API base URL
            timeout: Request timeout in seconds
            default_currency: Currency assumed when an order omits one
            transport: Optional httpx transport
        """
        settings = get_settings()

        # Use provided values or fall back to config
        self.access_token = access_token or settings.platform.access_token
        self.default_currency = default_currency or settings.platform.default_currency

        if not self.access_token:
            logger.warning("Platform access token not configured")

        super().__init__(
            base_url=base_url or settings.platform.base_url,
            service_name="platform",
            timeout=timeout or settings.platform.request_timeout,
            transport=transport,
        )

    def _prepare_headers(
        self, headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, str]:
        """Prepare request headers with bearer authentication."""
        prepared_headers = super()._prepare_headers(headers)

        if self.access_token:
            prepared_headers["Authorization"] = f"Bearer {self.access_token}"

        return prepared_headers

    @staticmethod
    def _require_object(data: Any, endpoint: str) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise RejectedError(
                message=f"Unexpected payload shape from {endpoint}",
                response_data=data,
            )
        return sanitize_external_api_response(data)

    # API Methods

    async def fetch_order(self, order_id: EntityId) -> OrderDetail:
        """
        Fetch an order with its customer.

        Args:
            order_id: Platform order id

        Returns:
            Order detail

        Raises:
            FetchError: On any unsuccessful lookup
        """
        endpoint = f"/orders/{order_id}"
        data = self._require_object(await self.get(endpoint), endpoint)

        order = extract_order(data, self.default_currency)
        if order is None:
            raise RejectedError(message="Order payload has no id", response_data=data)

        customer = data.get("customer")
        customer_id = sanitize_text(customer.get("id")) if isinstance(customer, dict) else None

        logger.debug("Order fetched", order_id=order.id, customer_id=customer_id)
        return OrderDetail(
            order=order,
            customer_id=customer_id,
            profile=extract_profile(customer),
        )

    async def fetch_customer(self, customer_id: EntityId) -> CustomerDetail:
        """
        Fetch a customer profile.

        Args:
            customer_id: Platform customer id

        Returns:
            Customer detail

        Raises:
            FetchError: On any unsuccessful lookup
        """
        endpoint = f"/customers/{customer_id}"
        data = self._require_object(await self.get(endpoint), endpoint)

        fetched_id = sanitize_text(data.get("id")) or str(customer_id)

        logger.debug("Customer fetched", customer_id=fetched_id)
        return CustomerDetail(id=fetched_id, profile=extract_profile(data))

    async def register_webhook(
        self,
        event: str,
        url: str,
        name: Optional[str] = None,
        version: int = 2,
    ) -> Dict[str, Any]:
        """
        Subscribe ``url`` to deliveries of ``event``.

        Returns:
            The subscription as echoed by the platform, including its id
        """
        payload = {
            "name": name or f"storehook {event}",
            "event": event,
            "url": url,
            "version": version,
        }
        endpoint = "/webhooks/subscribe"
        data = self._require_object(await self.post(endpoint, json=payload), endpoint)

        logger.info(
            "Webhook registered",
            event=event,
            url=url,
            webhook_id=data.get("id"),
        )
        return data
