from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Union

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def price_of(per_seat_price: Number, premium_percentage: Number) -> Decimal:
    """
    Price of one seat: the show's base price plus the seat kind's premium.

    >>> price_of(100, 50)
    Decimal('150.00')
    """
    base = Decimal(str(per_seat_price))
    premium = Decimal(str(premium_percentage))
    amount = base * (1 + premium / 100)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def quote_seats(show, seats: Iterable, premiums: Mapping[int, int]) -> dict[int, Decimal]:
    """Seat id -> price for the given seats of a show, premiums keyed by seat kind id."""
    return {
        seat.id: price_of(show.per_seat_price, premiums.get(seat.seat_kind_id, 0))
        for seat in seats
    }
