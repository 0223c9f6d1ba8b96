"""
Token Ledger

A fungible-token ledger with per-account balances, owner/spender
allowances, checked uint256 arithmetic and an append-only event log.
"""

__version__ = "1.0.0"
