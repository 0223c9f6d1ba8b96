"""
Ledger Error Module

Every rejected ledger call raises exactly one of these. The ``code``
attribute is stable and safe to branch on; the message mirrors the classic
token revert strings.
"""

from typing import Optional


class LedgerError(ValueError):
    """Base class for all ledger failures"""

    code = "ledger_error"
    default_message = "ERC20: operation failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ZeroAddressTarget(LedgerError):
    """Null identifier used where a real account is required"""

    code = "zero_address_target"
    default_message = "ERC20: transfer to the zero address"


class InsufficientBalance(LedgerError):
    """Debit exceeds the account's balance"""

    code = "insufficient_balance"
    default_message = "ERC20: transfer amount exceeds balance"


class InsufficientAllowance(LedgerError):
    """Delegated spend exceeds the spender's allowance"""

    code = "insufficient_allowance"
    default_message = "ERC20: insufficient allowance"


class AllowanceUnderflow(LedgerError):
    """decrease_allowance would take the allowance below zero"""

    code = "allowance_underflow"
    default_message = "ERC20: decreased allowance below zero"


class ArithmeticOverflow(LedgerError):
    """Addition would exceed the uint256 range"""

    code = "arithmetic_overflow"
    default_message = "ERC20: arithmetic overflow"


class InvalidAmount(LedgerError):
    """Amount argument is not an integer in [0, 2**256 - 1]"""

    code = "invalid_amount"
    default_message = "ERC20: invalid amount"


class InvalidAddress(LedgerError):
    """Malformed account identifier"""

    code = "invalid_address"
    default_message = "ERC20: invalid address"


class Unauthorized(LedgerError):
    """Caller lacks the administrative role for this operation"""

    code = "unauthorized"
    default_message = "ERC20: caller is not owner"


class MintCooldown(LedgerError):
    """Caller minted again before the mint interval elapsed"""

    code = "mint_cooldown"
    default_message = "ERC20: mint interval has not elapsed"
