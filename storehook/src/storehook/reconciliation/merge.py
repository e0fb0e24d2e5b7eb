"""Field-wise merge rule for customer records.

A non-empty incoming value overwrites the stored one; an empty incoming
value (None, blank string, zero amount) leaves the stored value alone.
Applying the same fields twice is a no-op the second time.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from storehook.events import CustomerProfile, OrderReference

logger = structlog.get_logger(__name__)

PROFILE_COLUMNS = {
    "first_name": "first_name",
    "last_name": "last_name",
    "email": "email",
    "phone": "phone",
    "country": "country",
    "city": "city",
    "currency": "currency",
}


def is_empty(value: Any) -> bool:
    """Whether ``value`` carries no information for the merge."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (int, Decimal)) and not isinstance(value, bool):
        return value == 0
    return False


def parse_platform_timestamp(
    value: Optional[str], tz_name: Optional[str] = None
) -> Optional[datetime]:
    """
    Parse the platform's ``date.date`` string into an aware datetime.

    Naive values are interpreted in ``tz_name`` (``date.timezone``); an
    unknown zone falls back to UTC. Unparseable values yield None.
    """
    if not value:
        return None

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Unparseable order timestamp", value=value[:64])
        return None

    if parsed.tzinfo is None:
        zone = timezone.utc
        if tz_name:
            try:
                zone = ZoneInfo(tz_name)
            except (ZoneInfoNotFoundError, ValueError, OSError):
                # OSError covers names that resolve to tzdata directories
                logger.warning("Unknown timezone, assuming UTC", timezone=tz_name)
        parsed = parsed.replace(tzinfo=zone)

    return parsed


def profile_fields(profile: CustomerProfile) -> Dict[str, Any]:
    """Column values carried by a customer profile."""
    return {
        column: getattr(profile, attr) for attr, column in PROFILE_COLUMNS.items()
    }


def order_fields(order: Optional[OrderReference]) -> Dict[str, Any]:
    """Column values of the last-order snapshot."""
    if order is None:
        return {}
    return {
        "last_order_id": order.id,
        "last_order_amount": order.total_amount,
        "last_order_status": order.status,
        "last_purchase_at": parse_platform_timestamp(order.purchased_at, order.timezone),
    }


def collect_fields(
    profile: CustomerProfile, order: Optional[OrderReference] = None
) -> Dict[str, Any]:
    fields = profile_fields(profile)
    fields.update(order_fields(order))
    return fields


def _same(current: Any, incoming: Any) -> bool:
    if isinstance(current, datetime) and isinstance(incoming, datetime):
        # SQLite drops the offset on write and hands back naive datetimes
        if current.tzinfo is None and incoming.tzinfo is not None:
            incoming = incoming.replace(tzinfo=None)
    return current == incoming


def merge_fields(record: Any, fields: Dict[str, Any]) -> List[str]:
    """
    Apply ``fields`` onto ``record`` with the non-empty-overwrite rule.

    Returns:
        Names of the attributes whose value changed
    """
    changed = []
    for name, incoming in fields.items():
        if is_empty(incoming):
            continue
        if _same(getattr(record, name, None), incoming):
            continue
        setattr(record, name, incoming)
        changed.append(name)
    return changed
