"""Two-tier pricing: local travelers pay the local rate, everyone else the foreign rate."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from ..core.exceptions import ValidationError
from ..models.booking import Currency

# Both LKR and USD have two decimal minor units.
MINOR_UNIT = Decimal("0.01")


class RatedListing(Protocol):
    local_price: Decimal
    foreign_price: Decimal


class Traveler(Protocol):
    country: Optional[str]


@dataclass(frozen=True)
class PriceQuote:
    """Price charged for one booking request."""

    unit_price: Decimal
    total_price: Decimal
    currency: Currency


class PricingService:
    """Pure pricing policy evaluated on the booking request path."""

    def __init__(self, local_country_code: str = "LK"):
        self.local_country_code = local_country_code.upper()

    def is_local(self, traveler: Traveler) -> bool:
        """Travelers with no recorded origin are never treated as local."""
        country = traveler.country
        return bool(country) and country.upper() == self.local_country_code

    def calculate_price(self, listing: RatedListing, traveler: Traveler, quantity: int) -> PriceQuote:
        """
        Calculate the price of ``quantity`` units of ``listing`` for ``traveler``.

        Args:
            listing: Listing carrying ``local_price`` and ``foreign_price``
            traveler: Traveler carrying an optional ISO 3166 ``country``
            quantity: Number of units requested

        Returns:
            Unit price, total price and the currency of the applied tier

        Raises:
            ValidationError: If quantity is not a positive integer
        """
        if quantity < 1:
            raise ValidationError(
                detail=f"Quantity must be a positive integer, got {quantity}",
                errors={"quantity": quantity}
            )

        if self.is_local(traveler):
            unit_price, currency = Decimal(str(listing.local_price)), Currency.LKR
        else:
            unit_price, currency = Decimal(str(listing.foreign_price)), Currency.USD

        return PriceQuote(
            unit_price=unit_price,
            total_price=(unit_price * quantity).quantize(MINOR_UNIT),
            currency=currency,
        )
