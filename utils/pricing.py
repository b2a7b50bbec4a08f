"""Fixed resort price lists and the fee arithmetic built on them."""

# per head, by visit time
ENTRANCE_FEES = {
    "morning": {"adult": 70, "kid": 60},
    "night": {"adult": 120, "kid": 100},
}

COTTAGE_FEES = {
    "tropahan": 300,
    "barkads": 400,
    "family": 500,
}

BASE_CAPACITY = 4
EXTRA_GUEST_FEE = 100


class PricingError(ValueError):
    pass


def entrance_fee(visit_time, adults: int = 0, kids: int = 0) -> int:
    if not visit_time:
        return 0
    prices = ENTRANCE_FEES.get(visit_time)
    if prices is None:
        raise PricingError(f"Invalid visit_time. Use one of: {', '.join(sorted(ENTRANCE_FEES))}")
    return (adults or 0) * prices["adult"] + (kids or 0) * prices["kid"]


def cottage_fee(cottage) -> int:
    if not cottage:
        return 0
    if cottage not in COTTAGE_FEES:
        raise PricingError(f"Invalid cottage. Use one of: {', '.join(sorted(COTTAGE_FEES))}")
    return COTTAGE_FEES[cottage]


def extra_guest_charge(guests) -> int:
    return max(0, (guests or 0) - BASE_CAPACITY) * EXTRA_GUEST_FEE


def apply_fees(booking):
    """Recomputes guest_count and every fee column of a Booking from its own fields."""
    if booking.adults or booking.kids:
        booking.guest_count = (booking.adults or 0) + (booking.kids or 0)
    elif not booking.guest_count:
        booking.guest_count = 1

    booking.entrance_fee = entrance_fee(booking.visit_time, booking.adults, booking.kids)
    booking.cottage_fee = cottage_fee(booking.cottage)
    booking.extra_guest_charge = extra_guest_charge(booking.guest_count)
    return booking
