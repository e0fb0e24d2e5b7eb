"""Tests for the platform REST API client."""

import json
from decimal import Decimal

import httpx
import pytest

from storehook.integrations.platform import PlatformClient
from storehook.utils.errors import (
    FetchConnectionError,
    FetchTimeoutError,
    NotFoundError,
    RateLimitedError,
    RejectedError,
    ServerError,
    UnauthorizedError,
)

BASE_URL = "https://api.example.test/admin/v2"

ORDER_DATA = {
    "id": 123456,
    "reference_id": 991,
    "status": {"id": 1, "name": "Completed", "slug": "completed"},
    "date": {"date": "2024-01-15 10:30:00.000000", "timezone_type": 3, "timezone": "Asia/Riyadh"},
    "amounts": {"total": {"amount": 150.5, "currency": "SAR"}},
    "items": [{"id": 1}, {"id": 2}],
    "customer": {
        "id": 789,
        "first_name": "Ahmed ",
        "last_name": "Ali",
        "email": "a@x.com",
        "mobile_code": "+966",
        "mobile": 500000000,
        "country": "Saudi Arabia",
        "city": "Riyadh",
    },
}


def make_client(handler) -> PlatformClient:
    return PlatformClient(
        access_token="test-token",
        base_url=BASE_URL,
        timeout=5,
        default_currency="SAR",
        transport=httpx.MockTransport(handler),
    )


class TestPlatformClient:
    """Successful lookups."""

    @pytest.mark.asyncio
    async def test_fetch_order(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"status": 200, "success": True, "data": ORDER_DATA})

        async with make_client(handler) as client:
            detail = await client.fetch_order(123456)

        assert seen["url"] == f"{BASE_URL}/orders/123456"
        assert seen["auth"] == "Bearer test-token"
        assert detail.order.id == "123456"
        assert detail.order.total_amount == Decimal("150.5")
        assert detail.order.status == "Completed"
        assert detail.order.item_count == 2
        assert detail.order.timezone == "Asia/Riyadh"
        assert detail.customer_id == "789"
        assert detail.profile.first_name == "Ahmed"
        assert detail.profile.phone == "+966500000000"

    @pytest.mark.asyncio
    async def test_fetch_customer(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/customers/789")
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {"id": 789, "first_name": "Ahmed", "email": "a@x.com", "currency": "SAR"},
                },
            )

        async with make_client(handler) as client:
            detail = await client.fetch_customer(789)

        assert detail.id == "789"
        assert detail.profile.email == "a@x.com"
        assert detail.profile.currency == "SAR"

    @pytest.mark.asyncio
    async def test_register_webhook(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path.endswith("/webhooks/subscribe")
            sent = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"id": 1501, **sent}})

        async with make_client(handler) as client:
            subscription = await client.register_webhook(
                "order.created", "https://hooks.example.test/in", name="orders", version=2
            )

        assert subscription == {
            "id": 1501,
            "name": "orders",
            "event": "order.created",
            "url": "https://hooks.example.test/in",
            "version": 2,
        }


class TestPlatformClientErrors:
    """Typed failures, one attempt each."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_class",
        [
            (401, UnauthorizedError),
            (403, UnauthorizedError),
            (404, NotFoundError),
            (429, RateLimitedError),
            (500, ServerError),
            (503, ServerError),
            (422, RejectedError),
        ],
    )
    async def test_status_classification(self, status, error_class):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, json={"success": False, "error": {"message": "nope"}})

        async with make_client(handler) as client:
            with pytest.raises(error_class) as exc_info:
                await client.fetch_order(1)

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_success_flag_false_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "data": {}})

        async with make_client(handler) as client:
            with pytest.raises(RejectedError) as exc_info:
                await client.fetch_customer(1)

        assert exc_info.value.status_code == 200
        assert exc_info.value.response_data == {"success": False, "data": {}}

    @pytest.mark.asyncio
    async def test_non_json_body_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        async with make_client(handler) as client:
            with pytest.raises(RejectedError) as exc_info:
                await client.fetch_customer(1)

        assert exc_info.value.response_data == "<html>maintenance</html>"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(FetchTimeoutError) as exc_info:
                await client.fetch_order(1)

        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(FetchConnectionError):
                await client.fetch_customer(1)

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"retry-after": "12"}, json={"success": False})

        async with make_client(handler) as client:
            with pytest.raises(RateLimitedError) as exc_info:
                await client.fetch_customer(1)

        assert exc_info.value.retry_after == 12
        assert exc_info.value.is_retryable
