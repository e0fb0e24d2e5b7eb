"""Tests for outbound error classification."""

import httpx
import pytest

from storehook.utils.errors import (
    FetchConnectionError,
    FetchError,
    FetchTimeoutError,
    NotFoundError,
    RateLimitedError,
    RejectedError,
    ServerError,
    UnauthorizedError,
    classify_exception,
    classify_http_error,
    ensure_success_envelope,
    handle_http_error,
)


def _response(status, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", "http://test.com"), **kwargs)


class TestErrorClassification:
    """Test error classification functions."""

    def test_classify_http_error(self):
        assert classify_http_error(_response(401)) is UnauthorizedError
        assert classify_http_error(_response(403)) is UnauthorizedError
        assert classify_http_error(_response(404)) is NotFoundError
        assert classify_http_error(_response(429)) is RateLimitedError
        assert classify_http_error(_response(500)) is ServerError
        assert classify_http_error(_response(400)) is RejectedError

    def test_classify_exception(self):
        response = _response(429)

        assert classify_exception(httpx.TimeoutException("slow")) is FetchTimeoutError
        assert classify_exception(httpx.ConnectError("refused")) is FetchConnectionError
        assert classify_exception(httpx.NetworkError("down")) is FetchConnectionError
        assert (
            classify_exception(
                httpx.HTTPStatusError("limited", request=response.request, response=response)
            )
            is RateLimitedError
        )

    def test_retryable_classes(self):
        retryable = [RateLimitedError(), ServerError(), FetchTimeoutError(), FetchConnectionError()]
        fatal = [UnauthorizedError(), NotFoundError(), RejectedError()]

        assert all(error.is_retryable for error in retryable)
        assert not any(error.is_retryable for error in fatal)
        assert all(isinstance(error, FetchError) for error in retryable + fatal)


class TestHandleHttpError:
    """Test HTTP error handler."""

    def test_success_passes(self):
        handle_http_error(_response(200))

    def test_rate_limit_with_bad_retry_after(self):
        with pytest.raises(RateLimitedError) as exc_info:
            handle_http_error(_response(429, headers={"retry-after": "soon"}))

        assert exc_info.value.retry_after is None

    def test_message_from_body(self):
        with pytest.raises(RejectedError) as exc_info:
            handle_http_error(_response(400, json={"message": "Missing required field"}))

        assert "Missing required field" in str(exc_info.value)

    def test_fallback_message(self):
        with pytest.raises(ServerError) as exc_info:
            handle_http_error(_response(502))

        assert exc_info.value.message == "HTTP 502: Bad Gateway"


class TestEnvelope:
    """Success envelope checks."""

    def test_returns_data(self):
        assert ensure_success_envelope(_response(200, json={"success": True, "data": {"id": 1}})) == {"id": 1}

    @pytest.mark.parametrize(
        "body",
        [{"success": False, "data": {}}, {"data": {}}, {"success": "true", "data": {}}, [1]],
    )
    def test_rejects_without_success_flag(self, body):
        with pytest.raises(RejectedError):
            ensure_success_envelope(_response(200, json=body))
