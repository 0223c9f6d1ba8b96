"""
Token Presets

Factory helpers for the two tokens used throughout the tutorials: a plain
ERC-20 with a human-readable initial supply, and the mintable "Alpha" token
that seeds its deployer and rate-limits further minting.
"""

from decimal import Decimal
from typing import Optional, Union

from .config import TokenLedgerConfig
from .events import EventDispatcher
from .ledger import MintPolicy, TokenLedger
from .storage import StorageInterface
from .units import to_base_units

MINTABLE_DECIMALS = 18
MINTABLE_INITIAL_SUPPLY = 100_000  # whole tokens credited to the deployer
MINTABLE_INTERVAL_SECONDS = 3600


def create_token(
    name: str,
    symbol: str,
    decimals: int,
    initial_supply: Union[str, int, Decimal],
    deployer: str,
    storage: Optional[StorageInterface] = None,
    config: Optional[TokenLedgerConfig] = None,
    dispatcher: Optional[EventDispatcher] = None
) -> TokenLedger:
    """
    Deploy a token whose initial supply is given in whole tokens

    ``create_token("TestToken", "TT", 18, "1000000", owner)`` credits
    ``1_000_000 * 10**18`` base units to ``owner``.
    """
    return TokenLedger.deploy(
        name=name,
        symbol=symbol,
        decimals=decimals,
        initial_supply=to_base_units(initial_supply, decimals),
        deployer=deployer,
        storage=storage,
        config=config,
        dispatcher=dispatcher
    )


def create_mintable_token(
    name: str,
    symbol: str,
    deployer: str,
    storage: Optional[StorageInterface] = None,
    config: Optional[TokenLedgerConfig] = None,
    dispatcher: Optional[EventDispatcher] = None,
    clock=None
) -> TokenLedger:
    """
    Deploy the faucet-style mintable token

    18 decimals, 100,000 tokens to the deployer, and any caller may mint
    once per hour.
    """
    return TokenLedger.deploy(
        name=name,
        symbol=symbol,
        decimals=MINTABLE_DECIMALS,
        initial_supply=to_base_units(MINTABLE_INITIAL_SUPPLY, MINTABLE_DECIMALS),
        deployer=deployer,
        storage=storage,
        config=config,
        dispatcher=dispatcher,
        mint_policy=MintPolicy.OPEN,
        mint_interval=MINTABLE_INTERVAL_SECONDS,
        clock=clock
    )
