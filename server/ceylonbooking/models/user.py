"""User model definition."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .listing import Listing


class UserType(str, Enum):
    """User type enumeration."""
    TOURIST = "tourist"
    HOST = "host"


class User(Base):
    """User entity for both travelers and hosts. Read-only to the booking engine."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Profile
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    user_type: Mapped[UserType] = mapped_column(String(16), nullable=False, default=UserType.TOURIST)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # ISO 3166 alpha-2, drives the pricing tier
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("length(email) > 0", name="ck_user_email_not_empty"),
        CheckConstraint("user_type IN ('tourist', 'host')", name="ck_user_type_valid"),
    )

    # Relationships
    listings: Mapped[list["Listing"]] = relationship("Listing", back_populates="host")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="tourist")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', user_type={self.user_type}, country={self.country})>"
