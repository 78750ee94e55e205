"""
Currency Module

Decimal coercion for engine inputs and currency-precision rounding for
engine outputs. The engine itself never rounds; values are quantized only
when they cross into Money for display or persistence. NEVER uses float
for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from enum import Enum
from typing import Union
import re

# High precision so long payment histories do not drift
getcontext().prec = 28

Number = Union[Decimal, int, float, str]


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    THB = ("THB", 2, "฿")   # Thai Baht
    USD = ("USD", 2, "$")   # US Dollar
    EUR = ("EUR", 2, "€")   # Euro
    JPY = ("JPY", 0, "¥")   # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


def to_decimal(value: Number) -> Decimal:
    """
    Coerce a number to Decimal without going through binary float

    Floats are converted via their shortest repr so 0.015 stays 0.015.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary value")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, str):
        return decimal_from_string(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation rounded to currency precision.
    Only used at the boundary; calculations stay in raw Decimal.
    """
    amount: Decimal
    currency: Currency = Currency.THB

    def __post_init__(self):
        amount = to_decimal(self.amount)
        object.__setattr__(self, 'amount', round_to_currency(amount, self.currency))

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency.code} and {other.currency.code}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency.code} from {self.currency.code}")
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount < other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number, e.g. "฿10,000.50"

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Strip currency symbols and whitespace; commas are thousands separators
    clean_value = re.sub(r'[^\d.,\-+eE]', '', value.strip()).replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def round_to_currency(value: Decimal, currency: Currency = Currency.THB) -> Decimal:
    """
    Round a Decimal to currency precision (half up)

    Args:
        value: Decimal to round
        currency: Currency defining precision

    Returns:
        Properly rounded Decimal
    """
    return value.quantize(
        Decimal('0.1') ** currency.precision,
        rounding=ROUND_HALF_UP
    )
