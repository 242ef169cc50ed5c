"""Booking model definition."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String, Time, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .listing import Listing
    from .user import User


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    """Currencies a booking can be priced in."""
    LKR = "LKR"  # local tier
    USD = "USD"  # foreign tier


class Booking(Base):
    """Booking entity: one row of the capacity ledger."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign keys
    listing_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    tourist_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Conflict key columns; time_slot is NULL for date-based listings
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Booking details
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[Currency] = mapped_column(String(3), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(16),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_booking_quantity_positive"),
        CheckConstraint("total_price > 0", name="ck_booking_total_price_positive"),
        CheckConstraint("currency IN ('LKR', 'USD')", name="ck_booking_currency_valid"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="ck_booking_status_valid"
        ),
        Index("ix_bookings_conflict_key", "listing_id", "booking_date", "time_slot"),
    )

    # Relationships
    listing: Mapped["Listing"] = relationship("Listing", back_populates="bookings")
    tourist: Mapped["User"] = relationship("User", back_populates="bookings")

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, listing_id={self.listing_id}, date={self.booking_date}, "
            f"time_slot={self.time_slot}, quantity={self.quantity}, status={self.status})>"
        )
