"""
Tests for the allowance store
"""

import pytest

from token_ledger.allowances import AllowanceStore
from token_ledger.errors import (
    AllowanceUnderflow, ArithmeticOverflow, InsufficientAllowance
)
from token_ledger.storage import InMemoryStorage
from token_ledger.units import UINT256_MAX, UNLIMITED_ALLOWANCE


OWNER = "0x" + "a1" * 20
SPENDER = "0x" + "b2" * 20
OTHER = "0x" + "c3" * 20


@pytest.fixture
def allowances():
    return AllowanceStore(InMemoryStorage())


class TestAllowanceStore:
    """Test delegated spending limits"""

    def test_default_zero(self, allowances):
        """Test unset pairs read as zero"""
        assert allowances.allowance_of(OWNER, SPENDER) == 0

    def test_set_overwrites(self, allowances):
        """Test set_allowance is absolute, not additive"""
        allowances.set_allowance(OWNER, SPENDER, 100)
        allowances.set_allowance(OWNER, SPENDER, 30)

        assert allowances.allowance_of(OWNER, SPENDER) == 30

    def test_pairs_are_ordered(self, allowances):
        """Test (owner, spender) and (spender, owner) are distinct"""
        allowances.set_allowance(OWNER, SPENDER, 100)

        assert allowances.allowance_of(SPENDER, OWNER) == 0

    def test_consume(self, allowances):
        """Test consumption decrements and returns the remainder"""
        allowances.set_allowance(OWNER, SPENDER, 100)

        assert allowances.consume(OWNER, SPENDER, 40) == 60
        assert allowances.allowance_of(OWNER, SPENDER) == 60

    def test_consume_insufficient(self, allowances):
        """Test consuming above the allowance leaves it unchanged"""
        allowances.set_allowance(OWNER, SPENDER, 100)

        with pytest.raises(InsufficientAllowance):
            allowances.consume(OWNER, SPENDER, 101)

        assert allowances.allowance_of(OWNER, SPENDER) == 100

    def test_consume_unlimited(self, allowances):
        """Test the unlimited sentinel is never decremented"""
        allowances.set_allowance(OWNER, SPENDER, UNLIMITED_ALLOWANCE)

        assert allowances.consume(OWNER, SPENDER, 10 ** 30) == UNLIMITED_ALLOWANCE
        assert allowances.allowance_of(OWNER, SPENDER) == UNLIMITED_ALLOWANCE

    def test_consume_just_below_unlimited(self, allowances):
        """Test one less than the sentinel is an ordinary allowance"""
        allowances.set_allowance(OWNER, SPENDER, UINT256_MAX - 1)

        assert allowances.consume(OWNER, SPENDER, 1) == UINT256_MAX - 2

    def test_increase(self, allowances):
        """Test relative increase returns the new total"""
        allowances.set_allowance(OWNER, SPENDER, 100)

        assert allowances.increase(OWNER, SPENDER, 50) == 150

    def test_increase_overflow(self, allowances):
        """Test increases past uint256 are rejected"""
        allowances.set_allowance(OWNER, SPENDER, UINT256_MAX)

        with pytest.raises(ArithmeticOverflow):
            allowances.increase(OWNER, SPENDER, 1)

    def test_decrease(self, allowances):
        """Test relative decrease returns the new total"""
        allowances.set_allowance(OWNER, SPENDER, 100)

        assert allowances.decrease(OWNER, SPENDER, 30) == 70

    def test_decrease_underflow(self, allowances):
        """Test decreases below zero are rejected"""
        allowances.set_allowance(OWNER, SPENDER, 50)

        with pytest.raises(AllowanceUnderflow, match="decreased allowance below zero"):
            allowances.decrease(OWNER, SPENDER, 100)

        assert allowances.allowance_of(OWNER, SPENDER) == 50

    def test_allowances_for_owner(self, allowances):
        """Test listing the non-zero allowances an owner granted"""
        allowances.set_allowance(OWNER, SPENDER, 100)
        allowances.set_allowance(OWNER, OTHER, 0)
        allowances.set_allowance(SPENDER, OTHER, 5)

        assert allowances.allowances_for_owner(OWNER) == {SPENDER: 100}

    def test_all_allowances(self, allowances):
        """Test every stored pair is listed"""
        allowances.set_allowance(OWNER, SPENDER, 100)
        allowances.set_allowance(SPENDER, OTHER, 5)

        assert allowances.all_allowances() == {
            (OWNER, SPENDER): 100,
            (SPENDER, OTHER): 5
        }
