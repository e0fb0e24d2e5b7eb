"""Base API client with typed error handling."""

from typing import Any, Dict, Optional
from urllib.parse import urljoin

import httpx
import structlog

from storehook.utils.errors import ensure_success_envelope, safe_request

logger = structlog.get_logger(__name__)


class BaseAPIClient:
    """Base class for external API clients.

    Every call is a single attempt; retry and backoff policy is left to
    the caller, which gets a typed FetchError to decide on.
    """

    def __init__(
        self,
        base_url: str,
        service_name: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: Root URL every endpoint is resolved against
            service_name: Tag for logs and the User-Agent header
            timeout: Per-request timeout in seconds
            transport: Replacement httpx transport, e.g. MockTransport
        """
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

        logger.debug("API client ready", service=service_name, base_url=self.base_url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def _build_url(self, endpoint: str) -> str:
        # Absolute URLs pass through untouched
        return urljoin(f"{self.base_url}/", endpoint.lstrip("/"))

    def _prepare_headers(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        merged = {
            "User-Agent": f"storehook/{self.service_name}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        merged.update(headers or {})
        return merged

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        Make one HTTP request.

        Raises:
            FetchError: On transport failures or unsuccessful statuses
        """
        url = self._build_url(endpoint)

        logger.debug(
            "Outbound request",
            service=self.service_name,
            method=method,
            url=url,
            params=params,
        )

        response = await safe_request(
            self._client,
            method,
            url,
            params=params,
            json=json,
            headers=self._prepare_headers(headers),
        )

        logger.debug(
            "Outbound request succeeded",
            service=self.service_name,
            method=method,
            url=url,
            status_code=response.status_code,
        )

        return response

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET and return the ``data`` member of a successful envelope."""
        response = await self._make_request("GET", endpoint, params=params, headers=headers)
        return ensure_success_envelope(response)

    async def post(
        self,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """POST and return the ``data`` member of a successful envelope."""
        response = await self._make_request(
            "POST", endpoint, params=params, json=json, headers=headers
        )
        return ensure_success_envelope(response)
