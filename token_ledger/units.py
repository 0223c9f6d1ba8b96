"""
Token Units Module

uint256 bounds, checked arithmetic, and conversion between human-readable
amounts and integer base units. NEVER uses float for token amounts.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Type, Union

from .errors import ArithmeticOverflow, InvalidAmount, LedgerError

UINT256_MAX = 2 ** 256 - 1

# Stored allowance equal to this value is never decremented by consumption
UNLIMITED_ALLOWANCE = UINT256_MAX

MAX_DECIMALS = 255


def validate_amount(amount) -> int:
    """
    Ensure an amount is an integer inside the uint256 range

    Raises:
        InvalidAmount: For bools, non-integers, negatives and values above the max
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"ERC20: amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmount("ERC20: amount must not be negative")
    if amount > UINT256_MAX:
        raise InvalidAmount("ERC20: amount exceeds uint256 range")
    return amount


def checked_add(a: int, b: int) -> int:
    """Add two uint256 values, failing instead of wrapping"""
    result = a + b
    if result > UINT256_MAX:
        raise ArithmeticOverflow()
    return result


def checked_sub(a: int, b: int, error: Type[LedgerError] = ArithmeticOverflow) -> int:
    """Subtract b from a, raising ``error`` if the result would be negative"""
    if b > a:
        raise error()
    return a - b


def _validate_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise ValueError("decimals must be an integer")
    if decimals < 0 or decimals > MAX_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {MAX_DECIMALS}")


def to_base_units(value: Union[str, int, Decimal], decimals: int) -> int:
    """
    Convert a human-readable amount to integer base units

    ``to_base_units("1.5", 18) == 1_500_000_000_000_000_000``

    Raises:
        ValueError: If the value has more fractional digits than ``decimals``
            or cannot be parsed
        InvalidAmount: If the scaled value is outside the uint256 range
    """
    _validate_decimals(decimals)
    if isinstance(value, float):
        raise ValueError("float amounts are not accepted, pass a string or Decimal")

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Cannot parse amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")

    with localcontext() as ctx:
        # scaleb is exact only while every input digit fits the precision
        ctx.prec = max(100, len(amount.as_tuple().digits))
        scaled = amount.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{value} has more than {decimals} decimal places")
        return validate_amount(int(scaled))


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units to an exact Decimal"""
    _validate_decimals(decimals)
    validate_amount(amount)
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(amount).scaleb(-decimals)


def format_units(amount: int, decimals: int) -> str:
    """
    Format base units for display, trimming trailing zeros

    ``format_units(1_500_000_000_000_000_000, 18) == "1.5"``
    """
    value = from_base_units(amount, decimals)
    text = f"{value:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
