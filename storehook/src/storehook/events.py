"""Typed webhook events and the classifier that produces them."""

import enum
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from storehook.utils.exceptions import MalformedPayloadError, MissingFieldError
from storehook.validation.sanitizers import sanitize_text

logger = structlog.get_logger(__name__)


class EventKind(str, enum.Enum):
    """Event kinds the service reacts to."""

    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_UPDATED = "customer.updated"
    UNKNOWN = "unknown"

    @property
    def is_order(self) -> bool:
        return self in (EventKind.ORDER_CREATED, EventKind.ORDER_UPDATED)

    @property
    def is_customer(self) -> bool:
        return self in (EventKind.CUSTOMER_CREATED, EventKind.CUSTOMER_UPDATED)


class CustomerProfile(BaseModel):
    """Customer fields observed in a payload; None means not observed."""

    model_config = ConfigDict(frozen=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    currency: Optional[str] = None


class OrderReference(BaseModel):
    """Order snapshot carried by order events."""

    model_config = ConfigDict(frozen=True)

    id: str
    total_amount: Decimal = Decimal("0")
    currency: str
    status: Optional[str] = None
    item_count: int = 0
    purchased_at: Optional[str] = None
    timezone: Optional[str] = None


class ClassifiedEvent(BaseModel):
    """A webhook payload reduced to the fields reconciliation needs."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    raw_kind: str
    external_customer_id: Optional[str] = None
    order: Optional[OrderReference] = None
    profile: CustomerProfile = CustomerProfile()


class CustomerDetail(BaseModel):
    """Customer as returned by the platform REST API."""

    model_config = ConfigDict(frozen=True)

    id: str
    profile: CustomerProfile


class OrderDetail(BaseModel):
    """Order as returned by the platform REST API."""

    model_config = ConfigDict(frozen=True)

    order: OrderReference
    customer_id: Optional[str] = None
    profile: CustomerProfile = CustomerProfile()


class EnrichmentResult(BaseModel):
    """Authoritative details fetched to complete an incomplete event."""

    model_config = ConfigDict(frozen=True)

    profile: CustomerProfile = CustomerProfile()
    order: Optional[OrderReference] = None


def _nested(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_amount(value: Any) -> Decimal:
    """Convert a platform amount to Decimal, defaulting to 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.warning("Unparseable amount, defaulting to 0", amount=str(value)[:50])
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


def normalize_currency(value: Any) -> Optional[str]:
    """Three-letter ISO code in upper case, or None."""
    code = sanitize_text(value)
    if code is None or len(code) != 3 or not code.isalpha():
        return None
    return code.upper()


def extract_phone(data: Dict[str, Any]) -> Optional[str]:
    """Dialing code followed by the local number."""
    code = sanitize_text(data.get("mobile_code")) or ""
    number = sanitize_text(data.get("mobile")) or ""
    return sanitize_text(f"{code}{number}")


def extract_profile(data: Any) -> CustomerProfile:
    """Read customer profile fields from a customer-shaped object."""
    if not isinstance(data, dict):
        return CustomerProfile()

    # Location may be flat or nested under "location"
    location = data.get("location") if isinstance(data.get("location"), dict) else {}

    return CustomerProfile(
        first_name=sanitize_text(data.get("first_name")),
        last_name=sanitize_text(data.get("last_name")),
        email=sanitize_text(data.get("email")),
        phone=extract_phone(data),
        country=sanitize_text(data.get("country") or location.get("country")),
        city=sanitize_text(data.get("city") or location.get("city")),
        currency=normalize_currency(data.get("currency")),
    )


def extract_order(data: Dict[str, Any], default_currency: str) -> Optional[OrderReference]:
    """Read the order snapshot from an order-shaped object."""
    order_id = sanitize_text(data.get("id"))
    if order_id is None:
        return None

    total = _nested(data, "amounts", "total")
    currency = (
        normalize_currency(_nested(total, "currency"))
        or normalize_currency(data.get("currency"))
        or default_currency
    )

    status = data.get("status")
    if isinstance(status, dict):
        status = status.get("name") or status.get("slug")

    items = data.get("items")
    item_count = len(items) if isinstance(items, list) else 0

    date = data.get("date")
    if isinstance(date, dict):
        purchased_at = sanitize_text(date.get("date"))
        timezone = sanitize_text(date.get("timezone"))
    else:
        purchased_at = sanitize_text(date)
        timezone = None

    return OrderReference(
        id=order_id,
        total_amount=parse_amount(_nested(total, "amount")),
        currency=currency,
        status=sanitize_text(status),
        item_count=item_count,
        purchased_at=purchased_at,
        timezone=timezone,
    )


class EventClassifier:
    """Turns raw webhook bodies into ClassifiedEvent values.

    Pure: the same bytes always produce an equal event.
    """

    def __init__(self, default_currency: str = "SAR") -> None:
        self.default_currency = default_currency

    def classify(self, raw_body: bytes) -> ClassifiedEvent:
        """
        Classify a raw webhook body.

        Args:
            raw_body: Exact request body

        Returns:
            The classified event; unrecognized kinds yield EventKind.UNKNOWN

        Raises:
            MalformedPayloadError: Body is not a JSON object
            MissingFieldError: ``event``, ``data`` or the customer id is absent
        """
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError, RecursionError) as exc:
            raise MalformedPayloadError(f"Body is not valid JSON: {exc}") from exc

        if not isinstance(payload, dict):
            raise MalformedPayloadError("Top-level JSON value must be an object")

        raw_kind = payload.get("event")
        if raw_kind is None or (isinstance(raw_kind, str) and not raw_kind.strip()):
            raise MissingFieldError("event")
        if not isinstance(raw_kind, str):
            raise MalformedPayloadError("Field 'event' must be a string")
        raw_kind = raw_kind.strip()

        if "data" not in payload or payload["data"] is None:
            raise MissingFieldError("data")
        data = payload["data"]
        if not isinstance(data, dict):
            raise MalformedPayloadError("Field 'data' must be an object")

        try:
            kind = EventKind(raw_kind)
        except ValueError:
            kind = EventKind.UNKNOWN
        if kind is EventKind.UNKNOWN:
            return ClassifiedEvent(kind=kind, raw_kind=raw_kind)

        if kind.is_order:
            customer = data.get("customer")
            customer_id = sanitize_text(_nested(customer, "id"))
            if customer_id is None:
                raise MissingFieldError("data.customer.id")
            return ClassifiedEvent(
                kind=kind,
                raw_kind=raw_kind,
                external_customer_id=customer_id,
                order=extract_order(data, self.default_currency),
                profile=extract_profile(customer),
            )

        customer_id = sanitize_text(data.get("id"))
        if customer_id is None:
            raise MissingFieldError("data.id")
        return ClassifiedEvent(
            kind=kind,
            raw_kind=raw_kind,
            external_customer_id=customer_id,
            profile=extract_profile(data),
        )
