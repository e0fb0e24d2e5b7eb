"""Tests for the field-wise merge rule."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from storehook.events import CustomerProfile, OrderReference
from storehook.reconciliation.merge import (
    collect_fields,
    is_empty,
    merge_fields,
    parse_platform_timestamp,
)


@pytest.mark.parametrize(
    "value,empty",
    [
        (None, True),
        ("", True),
        ("   ", True),
        (0, True),
        (Decimal("0.00"), True),
        ("0", False),
        ("Ahmed", False),
        (Decimal("1.5"), False),
        (datetime(2024, 1, 1, tzinfo=timezone.utc), False),
    ],
)
def test_is_empty(value, empty):
    assert is_empty(value) is empty


class TestMergeFields:
    """merge_fields applies non-empty values only."""

    def _record(self, **values):
        base = {"first_name": None, "email": None, "city": None}
        base.update(values)
        return SimpleNamespace(**base)

    def test_non_empty_overwrites(self):
        record = self._record(first_name="Old")

        changed = merge_fields(record, {"first_name": "New"})

        assert record.first_name == "New"
        assert changed == ["first_name"]

    def test_empty_preserves(self):
        record = self._record(first_name="Ahmed", email="a@x.com")

        changed = merge_fields(record, {"first_name": None, "email": ""})

        assert record.first_name == "Ahmed"
        assert record.email == "a@x.com"
        assert changed == []

    def test_second_application_is_noop(self):
        record = self._record()
        fields = {"first_name": "Ahmed", "city": "Riyadh"}

        merge_fields(record, fields)
        snapshot = dict(vars(record))
        changed = merge_fields(record, fields)

        assert changed == []
        assert vars(record) == snapshot

    def test_naive_stored_datetime_compares_equal(self):
        aware = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=3)))
        record = SimpleNamespace(last_purchase_at=aware.replace(tzinfo=None))

        assert merge_fields(record, {"last_purchase_at": aware}) == []


class TestCollectFields:
    """Mapping of events onto record columns."""

    def test_profile_and_order(self):
        order = OrderReference(
            id="123456",
            total_amount=Decimal("150.50"),
            currency="SAR",
            status="Pending",
            purchased_at="2024-01-15T10:30:00+03:00",
        )
        fields = collect_fields(CustomerProfile(first_name="Ahmed"), order)

        assert fields["first_name"] == "Ahmed"
        assert fields["email"] is None
        assert fields["last_order_id"] == "123456"
        assert fields["last_order_amount"] == Decimal("150.50")
        assert fields["last_order_status"] == "Pending"
        assert fields["last_purchase_at"].utcoffset() == timedelta(hours=3)

    def test_without_order(self):
        fields = collect_fields(CustomerProfile(email="a@x.com"))

        assert "last_order_id" not in fields
        assert fields["email"] == "a@x.com"


class TestParseTimestamp:
    """Platform timestamps become aware datetimes."""

    def test_naive_without_zone_is_utc(self):
        parsed = parse_platform_timestamp("2024-01-15 10:30:00.000000")

        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_explicit_offset_wins(self):
        parsed = parse_platform_timestamp("2024-01-15T10:30:00+03:00", "Europe/London")

        assert parsed.utcoffset() == timedelta(hours=3)

    def test_named_zone_gives_aware_value(self):
        parsed = parse_platform_timestamp("2024-01-15 10:30:00", "Asia/Riyadh")

        assert parsed.tzinfo is not None

    def test_unknown_zone_falls_back_to_utc(self):
        parsed = parse_platform_timestamp("2024-01-15 10:30:00", "Mars/Olympus")

        assert parsed.utcoffset() == timedelta(0)

    def test_directory_zone_falls_back_to_utc(self):
        parsed = parse_platform_timestamp("2024-01-15 10:30:00", "Asia")

        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unparseable(self, value):
        assert parse_platform_timestamp(value) is None
