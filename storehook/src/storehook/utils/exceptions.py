"""Custom exceptions for storehook."""

from typing import Any, Dict, Optional


class StoreHookException(Exception):
    """Base exception for storehook.

    Carries the HTTP status the inbound caller should receive.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Structured error body."""
        return {"status": "error", "error": self.code, "message": self.message}


class SignatureError(StoreHookException):
    """Base exception for webhook authentication failures."""

    status_code = 401


class MissingSignatureError(SignatureError):
    """Raised when a delivery carries no signature header."""

    status_code = 400

    def __init__(self, message: str = "Missing webhook signature"):
        super().__init__(message, code="missing_signature")


class InvalidSignatureError(SignatureError):
    """Raised when the signature does not match the payload."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message, code="invalid_signature")


class ParseError(StoreHookException):
    """Base exception for payloads that cannot be classified."""

    status_code = 400


class MalformedPayloadError(ParseError):
    """Raised when the body is not a well-formed JSON object."""

    def __init__(self, message: str = "Malformed webhook payload"):
        super().__init__(message, code="malformed")


class MissingFieldError(ParseError):
    """Raised when a required field is absent from the payload."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing required field: {field}", code="missing_field"
        )
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class StoreError(StoreHookException):
    """Raised when a customer record cannot be persisted."""

    status_code = 500

    def __init__(
        self,
        message: str,
        external_customer_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, code="store_error")
        self.external_customer_id = external_customer_id
        self.original_error = original_error
