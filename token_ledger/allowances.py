"""
Allowance Store Module

Spending allowances keyed by the ordered (owner, spender) pair. An
allowance equal to UNLIMITED_ALLOWANCE is never decremented when spent.
"""

from typing import Dict, Tuple

from .addresses import normalize_address
from .errors import AllowanceUnderflow, InsufficientAllowance
from .storage import StorageInterface
from .units import UNLIMITED_ALLOWANCE, checked_add, checked_sub, validate_amount


class AllowanceStore:
    """Delegated spending limits"""

    def __init__(self, storage: StorageInterface, table_name: str = "allowances"):
        self.storage = storage
        self.table_name = table_name

    @staticmethod
    def _record_id(owner: str, spender: str) -> str:
        return f"{owner}:{spender}"

    def allowance_of(self, owner: str, spender: str) -> int:
        """Amount ``spender`` may still move out of ``owner``'s balance"""
        record = self.storage.load(
            self.table_name,
            self._record_id(normalize_address(owner), normalize_address(spender))
        )
        if record:
            return int(record['amount'])
        return 0

    def set_allowance(self, owner: str, spender: str, amount: int) -> int:
        """Overwrite the allowance with an absolute value"""
        validate_amount(amount)
        self._save(normalize_address(owner), normalize_address(spender), amount)
        return amount

    def consume(self, owner: str, spender: str, amount: int) -> int:
        """
        Spend ``amount`` of an allowance

        Returns:
            The remaining allowance

        Raises:
            InsufficientAllowance: If ``amount`` exceeds the current allowance
        """
        validate_amount(amount)
        current = self.allowance_of(owner, spender)
        if amount > current:
            raise InsufficientAllowance()
        if current == UNLIMITED_ALLOWANCE:
            return current

        remaining = current - amount
        self._save(normalize_address(owner), normalize_address(spender), remaining)
        return remaining

    def increase(self, owner: str, spender: str, delta: int) -> int:
        """Raises ArithmeticOverflow past uint256; returns the new total"""
        validate_amount(delta)
        new_total = checked_add(self.allowance_of(owner, spender), delta)
        self._save(normalize_address(owner), normalize_address(spender), new_total)
        return new_total

    def decrease(self, owner: str, spender: str, delta: int) -> int:
        """Raises AllowanceUnderflow below zero; returns the new total"""
        validate_amount(delta)
        new_total = checked_sub(self.allowance_of(owner, spender), delta, AllowanceUnderflow)
        self._save(normalize_address(owner), normalize_address(spender), new_total)
        return new_total

    def allowances_for_owner(self, owner: str) -> Dict[str, int]:
        """Non-zero allowances granted by ``owner``, keyed by spender"""
        owner = normalize_address(owner)
        return {
            record['spender']: int(record['amount'])
            for record in self.storage.find(self.table_name, {'owner': owner})
            if int(record['amount'])
        }

    def all_allowances(self) -> Dict[Tuple[str, str], int]:
        return {
            (record['owner'], record['spender']): int(record['amount'])
            for record in self.storage.load_all(self.table_name)
        }

    def _save(self, owner: str, spender: str, amount: int) -> None:
        self.storage.save(self.table_name, self._record_id(owner, spender), {
            'owner': owner,
            'spender': spender,
            'amount': str(amount)
        })
