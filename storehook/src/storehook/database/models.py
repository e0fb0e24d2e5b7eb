"""SQLAlchemy database models for storehook."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Customer(Base, TimestampMixin):
    """Local record of a platform customer, one row per external id."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_customer_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )

    # Profile
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32))

    # Locale
    country: Mapped[Optional[str]] = mapped_column(String(100))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Denormalized last order snapshot
    last_order_id: Mapped[Optional[str]] = mapped_column(String(64))
    last_order_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    last_order_status: Mapped[Optional[str]] = mapped_column(String(50))
    last_purchase_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )

    def __repr__(self) -> str:
        return (
            f"<Customer(id={self.id}, "
            f"external_customer_id='{self.external_customer_id}', email='{self.email}')>"
        )
