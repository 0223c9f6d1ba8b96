"""
Account Store Module

Per-account token balances and the running total supply. The store owns
the conservation invariant: the sum of all balances equals total supply.
Only the ledger engine calls the mutating methods.
"""

from typing import Dict, List, Optional

from .addresses import normalize_address
from .errors import InsufficientBalance
from .storage import StorageInterface
from .units import checked_add, checked_sub, validate_amount


class AccountStore:
    """
    Balances keyed by account identifier

    Unknown accounts read as zero. Amounts are persisted as decimal strings.
    """

    SUPPLY_RECORD_ID = "total"

    def __init__(self, storage: StorageInterface, table_name: str = "balances",
                 supply_table: str = "token_supply"):
        self.storage = storage
        self.table_name = table_name
        self.supply_table = supply_table

    def balance_of(self, account: str) -> int:
        """Current balance of ``account``; 0 if never credited"""
        record = self.storage.load(self.table_name, normalize_address(account))
        if record:
            return int(record['balance'])
        return 0

    def credit(self, account: str, amount: int) -> int:
        """
        Add ``amount`` to an account's balance

        Returns:
            The new balance

        Raises:
            ArithmeticOverflow: If the balance would exceed uint256
        """
        account = normalize_address(account)
        validate_amount(amount)
        new_balance = checked_add(self.balance_of(account), amount)
        self._save_balance(account, new_balance)
        return new_balance

    def debit(self, account: str, amount: int, message: Optional[str] = None) -> int:
        """
        Remove ``amount`` from an account's balance

        Args:
            account: Account to debit
            amount: Base units to remove
            message: Overrides the InsufficientBalance message (burns use their own)

        Returns:
            The new balance

        Raises:
            InsufficientBalance: If ``amount`` exceeds the current balance
        """
        account = normalize_address(account)
        validate_amount(amount)
        current = self.balance_of(account)
        if amount > current:
            raise InsufficientBalance(message)
        new_balance = current - amount
        self._save_balance(account, new_balance)
        return new_balance

    def total_supply(self) -> int:
        record = self.storage.load(self.supply_table, self.SUPPLY_RECORD_ID)
        if record:
            return int(record['total_supply'])
        return 0

    def increase_supply(self, amount: int) -> int:
        """Raises ArithmeticOverflow if supply would exceed uint256"""
        validate_amount(amount)
        new_supply = checked_add(self.total_supply(), amount)
        self._save_supply(new_supply)
        return new_supply

    def decrease_supply(self, amount: int) -> int:
        validate_amount(amount)
        # Only reachable if balances and supply disagree; burns debit the holder first
        new_supply = checked_sub(self.total_supply(), amount, InsufficientBalance)
        self._save_supply(new_supply)
        return new_supply

    def holders(self) -> Dict[str, int]:
        """All accounts with a non-zero balance"""
        balances = {}
        for record in self.storage.load_all(self.table_name):
            balance = int(record['balance'])
            if balance:
                balances[record['account']] = balance
        return balances

    def sum_balances(self) -> int:
        return sum(self.holders().values())

    def accounts(self) -> List[str]:
        """Every account that has ever held a balance record"""
        return [record['account'] for record in self.storage.load_all(self.table_name)]

    def _save_balance(self, account: str, balance: int) -> None:
        self.storage.save(self.table_name, account, {
            'account': account,
            'balance': str(balance)
        })

    def _save_supply(self, total_supply: int) -> None:
        self.storage.save(self.supply_table, self.SUPPLY_RECORD_ID, {
            'total_supply': str(total_supply)
        })
