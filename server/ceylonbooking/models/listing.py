"""Listing model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .user import User


class InventoryType(str, Enum):
    """Bookable unit of a listing."""
    SLOT = "slot"  # time-of-day slots on a calendar day (boat tours, activities)
    DATE = "date"  # whole days/nights (homestays, hotels)


class Listing(Base):
    """Listing entity representing bookable inventory published by a host."""

    __tablename__ = "listings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Owner
    host_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Catalog details, opaque to the booking engine
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Inventory
    inventory_type: Mapped[InventoryType] = mapped_column(String(8), nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Two-tier rates (local price in LKR, foreign price in USD)
    local_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    foreign_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_listing_capacity_positive"),
        CheckConstraint("local_price > 0", name="ck_listing_local_price_positive"),
        CheckConstraint("foreign_price > 0", name="ck_listing_foreign_price_positive"),
        CheckConstraint("inventory_type IN ('slot', 'date')", name="ck_listing_inventory_type_valid"),
        CheckConstraint("length(title) > 0", name="ck_listing_title_not_empty"),
    )

    # Relationships
    host: Mapped["User"] = relationship("User", back_populates="listings")
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="listing",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Listing(id={self.id}, title='{self.title}', "
            f"inventory_type={self.inventory_type}, capacity={self.capacity})>"
        )
