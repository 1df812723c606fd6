"""Gross travel price composition"""

from travel_payments.domain.models import GrossPrice, TravelPrice
from travel_payments.domain.money import ZERO, non_negative


def compute_gross_price(travel_price: TravelPrice) -> GrossPrice:
    """
    Sum the base traveler price and all companion prices.

    A missing base price counts as zero. For a brinde (gift) booking the base
    price is reported as gift_value and left out of the billable total while
    companions still bill normally.

    Raises:
        ValidationError: If any price is negative
    """
    base = non_negative(travel_price.base_price, "base_price")
    companions_total = sum(
        (non_negative(p, "companion price") for p in travel_price.companions),
        ZERO,
    )

    if travel_price.is_gift:
        return GrossPrice(billable=companions_total, gift_value=base, companions_total=companions_total)

    return GrossPrice(billable=base + companions_total, companions_total=companions_total)
