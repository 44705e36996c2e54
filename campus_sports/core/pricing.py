from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from campus_sports.core.errors import ValidationError


Number = Union[int, str, Decimal]

# currencies the processor takes in whole units
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def calculate_price(price_per_hour: Number, duration_minutes: int) -> Decimal:
    """price_per_hour * minutes / 60 without rounding; rounding happens at payment submission."""
    if duration_minutes <= 0:
        raise ValidationError("Duration must be positive", code="NonPositiveDuration")

    rate = Decimal(str(price_per_hour))
    if rate < 0:
        raise ValidationError("Price per hour cannot be negative")

    return rate * duration_minutes / Decimal(60)


def to_minor_units(amount: Number, currency: str) -> int:
    """Amount in the smallest currency unit (cents, kopecks) for the processor."""
    value = Decimal(str(amount))
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
