"""Error classification for outbound platform API calls."""

from typing import Any, Optional, Type

import httpx


class FetchError(Exception):
    """Base exception for platform API failures."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        self.original_error = original_error

    @property
    def is_retryable(self) -> bool:
        """Whether the caller may retry the same request later."""
        return self.retryable


class UnauthorizedError(FetchError):
    """Credential rejected; fatal until re-authenticated."""

    def __init__(self, message: str = "Authentication failed", **kwargs) -> None:
        super().__init__(message, **kwargs)


class NotFoundError(FetchError):
    """Entity does not exist on the platform."""

    def __init__(self, message: str = "Resource not found", **kwargs) -> None:
        super().__init__(message, **kwargs)


class RejectedError(FetchError):
    """Request answered but not successful (status or success flag)."""

    def __init__(self, message: str = "Request rejected", **kwargs) -> None:
        super().__init__(message, **kwargs)


class RateLimitedError(FetchError):
    """Rate limit exceeded error."""

    retryable = True

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(FetchError):
    """Platform side failure (5xx)."""

    retryable = True

    def __init__(self, message: str = "Platform server error", **kwargs) -> None:
        super().__init__(message, **kwargs)


class FetchConnectionError(FetchError):
    """Network connectivity error."""

    retryable = True

    def __init__(self, message: str = "Network error occurred", **kwargs) -> None:
        super().__init__(message, **kwargs)


class FetchTimeoutError(FetchError):
    """Request timeout error."""

    retryable = True

    def __init__(self, message: str = "Request timed out", **kwargs) -> None:
        super().__init__(message, **kwargs)


def classify_http_error(response: httpx.Response) -> Type[FetchError]:
    """Classify an unsuccessful HTTP response."""
    status_code = response.status_code

    if status_code in (401, 403):  # Unauthorized, Forbidden
        return UnauthorizedError
    elif status_code == 404:
        return NotFoundError
    elif status_code == 429:  # Too Many Requests
        return RateLimitedError
    elif 500 <= status_code < 600:
        return ServerError

    return RejectedError


def classify_exception(exc: Exception) -> Type[FetchError]:
    """Classify transport exceptions."""
    if isinstance(exc, httpx.TimeoutException):
        return FetchTimeoutError
    elif isinstance(exc, (httpx.NetworkError, httpx.ConnectError)):
        return FetchConnectionError
    elif isinstance(exc, httpx.HTTPStatusError):
        return classify_http_error(exc.response)
    else:
        return FetchConnectionError


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def handle_http_error(response: httpx.Response) -> None:
    """
    Raise the matching FetchError for an unsuccessful response.

    Args:
        response: HTTP response object

    Raises:
        FetchError: Appropriate error based on response status
    """
    if response.is_success:
        return

    status_code = response.status_code
    response_data = _response_body(response)

    error_message = None
    if isinstance(response_data, dict):
        error = response_data.get("error")
        if isinstance(error, dict):
            error_message = error.get("message")
        error_message = error_message or response_data.get("message")

    if not error_message:
        error_message = f"HTTP {status_code}: {response.reason_phrase}"

    error_class = classify_http_error(response)

    if error_class is RateLimitedError:
        retry_after = None
        retry_header = response.headers.get("retry-after")
        if retry_header:
            try:
                retry_after = int(retry_header)
            except ValueError:
                pass

        raise RateLimitedError(
            message=error_message,
            status_code=status_code,
            response_data=response_data,
            retry_after=retry_after,
        )

    raise error_class(
        message=error_message,
        status_code=status_code,
        response_data=response_data,
    )


def ensure_success_envelope(response: httpx.Response) -> Any:
    """
    Return the ``data`` member of a successful platform envelope.

    The platform answers ``{"success": bool, "data": {...}}``; a 2xx status
    without ``success: true`` is still a rejection.
    """
    body = _response_body(response)
    if not isinstance(body, dict) or body.get("success") is not True:
        raise RejectedError(
            message="Platform response did not report success",
            status_code=response.status_code,
            response_data=body,
        )
    return body.get("data")


async def safe_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """
    Make a single HTTP request with typed error handling.

    Args:
        client: HTTP client instance
        method: HTTP method
        url: Request URL
        **kwargs: Additional request parameters

    Returns:
        HTTP response object

    Raises:
        FetchError: On request failures
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        error_class = classify_exception(exc)
        raise error_class(
            message=f"HTTP request failed: {str(exc)}",
            original_error=exc,
        ) from exc

    handle_http_error(response)
    return response
