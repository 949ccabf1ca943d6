"""Price computation and field rules shared by the cart, bookings and catalog."""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from models_sqlalchemy import SEASONS

MIN_GUESTS = 1
MAX_GUESTS = 20
CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_total(price, guests: int) -> Decimal:
    """Per-guest package price times the guest count, in cents."""
    return to_money(to_money(price) * guests)


def validate_guests(guests) -> Optional[str]:
    try:
        in_range = guests is not None and MIN_GUESTS <= guests <= MAX_GUESTS
    except TypeError:
        in_range = False
    if not in_range:
        return f"number_of_guests must be between {MIN_GUESTS} and {MAX_GUESTS}"
    return None


def validate_date_range(start_date, end_date) -> Optional[str]:
    if start_date is None or end_date is None:
        return "start_date and end_date are required"
    if end_date < start_date:
        return "end_date must not be before start_date"
    return None


def default_duration(start_date, end_date, duration_days: Optional[int]) -> int:
    if duration_days is not None and duration_days > 0:
        return duration_days
    return (end_date - start_date).days


def normalize_season(season: Optional[str]) -> Optional[str]:
    """Lowercased season, or None when it is not one of the four catalog seasons."""
    if not season:
        return None
    season = season.strip().lower()
    return season if season in SEASONS else None
