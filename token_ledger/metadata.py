"""
Token Metadata Module

Immutable descriptive fields set once when a token is deployed.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Union

from .units import MAX_DECIMALS, to_base_units, from_base_units, format_units


@dataclass(frozen=True)
class TokenMetadata:
    """
    Name, symbol and decimal precision of a token

    ``decimals`` only affects how human-readable amounts are scaled;
    ledger arithmetic always works in integer base units.
    """
    name: str
    symbol: str
    decimals: int = 18

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Token name must be a non-empty string")
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise ValueError("Token symbol must be a non-empty string")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise ValueError("decimals must be an integer")
        if self.decimals < 0 or self.decimals > MAX_DECIMALS:
            raise ValueError(f"decimals must be between 0 and {MAX_DECIMALS}")

    def to_base_units(self, value: Union[str, int, Decimal]) -> int:
        """Scale a human-readable amount to base units"""
        return to_base_units(value, self.decimals)

    def from_base_units(self, amount: int) -> Decimal:
        return from_base_units(amount, self.decimals)

    def format_amount(self, amount: int) -> str:
        """Format base units for display, e.g. ``"1.5 TT"``"""
        return f"{format_units(amount, self.decimals)} {self.symbol}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'symbol': self.symbol,
            'decimals': self.decimals
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenMetadata':
        return cls(
            name=data['name'],
            symbol=data['symbol'],
            decimals=int(data['decimals'])
        )
