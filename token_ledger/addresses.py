"""
Account Identifier Module

Accounts are 20-byte identifiers written as 0x-prefixed hex strings.
All identifiers are normalised to lowercase before they reach storage.
"""

import re

from .errors import InvalidAddress, ZeroAddressTarget

ADDRESS_BYTES = 20

NULL_ADDRESS = "0x" + "0" * (ADDRESS_BYTES * 2)

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{%d}$" % (ADDRESS_BYTES * 2))


def normalize_address(address: str) -> str:
    """
    Return the canonical lowercase form of an account identifier

    Accepts the identifier with or without the 0x prefix.

    Raises:
        InvalidAddress: If the value is not a 20-byte hex identifier
    """
    if not isinstance(address, str):
        raise InvalidAddress(f"ERC20: address must be a string, got {type(address).__name__}")

    candidate = address.strip().lower()
    if not candidate.startswith("0x"):
        candidate = "0x" + candidate

    if not _ADDRESS_RE.match(candidate):
        raise InvalidAddress(f"ERC20: invalid address {address!r}")
    return candidate


def is_null_address(address: str) -> bool:
    return normalize_address(address) == NULL_ADDRESS


def require_non_null(address: str, message: str) -> str:
    """Normalise an address and reject the null identifier"""
    normalized = normalize_address(address)
    if normalized == NULL_ADDRESS:
        raise ZeroAddressTarget(message)
    return normalized


def address_from_int(value: int) -> str:
    """Build an identifier from an integer, handy for fixtures and seeding"""
    if value < 0 or value >= 2 ** (ADDRESS_BYTES * 8):
        raise InvalidAddress(f"ERC20: {value} does not fit in {ADDRESS_BYTES} bytes")
    return "0x" + value.to_bytes(ADDRESS_BYTES, "big").hex()
