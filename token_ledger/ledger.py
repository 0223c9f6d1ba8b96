"""
Token Ledger Engine

Public operation surface of the fungible token: transfer, approve,
transfer_from, increase/decrease_allowance, mint, burn and burn_from.
Every operation validates its preconditions, mutates the account and
allowance stores inside one storage transaction, appends the emitted
events to the event log in that same transaction, and only then publishes
them to subscribers. A rejected call leaves no state change and no event.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union
import math
import threading
import time

from .accounts import AccountStore
from .addresses import NULL_ADDRESS, normalize_address, require_non_null
from .allowances import AllowanceStore
from .config import TokenLedgerConfig, get_config
from .errors import LedgerError, MintCooldown, Unauthorized
from .event_log import EventLog, LoggedEvent
from .events import Approval, EventDispatcher, TokenEvent, TokenEventType, Transfer
from .logging_config import get_logger, log_action
from .metadata import TokenMetadata
from .storage import StorageInterface, create_storage
from .units import validate_amount

CALLER_IS_ZERO = "ERC20: caller is the zero address"


class MintPolicy(Enum):
    """Who may call mint"""
    OPEN = "open"      # Anyone, as in the tutorial token
    OWNER = "owner"    # Only the deploying account


@dataclass(frozen=True)
class Receipt:
    """Result of a successful state-changing call"""
    success: bool
    operation: str
    events: Tuple[TokenEvent, ...]

    def __bool__(self) -> bool:
        return self.success


class TokenLedger:
    """
    Fungible token ledger

    Build one with ``TokenLedger.deploy(...)`` or re-open existing state
    with ``TokenLedger.attach(storage)``. Each instance owns its stores;
    there is no module-level ledger.
    """

    METADATA_TABLE = "token_metadata"
    METADATA_RECORD_ID = "metadata"
    MINT_CLOCK_TABLE = "mint_clock"

    def __init__(
        self,
        storage: StorageInterface,
        metadata: TokenMetadata,
        owner: str,
        mint_policy: MintPolicy = MintPolicy.OPEN,
        mint_interval: int = 0,
        config: Optional[TokenLedgerConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        if isinstance(mint_interval, bool) or not isinstance(mint_interval, int) or mint_interval < 0:
            raise ValueError("mint_interval must be a non-negative integer number of seconds")

        self.config = config or get_config()
        self.storage = storage
        self.metadata = metadata
        self.owner = normalize_address(owner)
        self.mint_policy = mint_policy
        self.mint_interval = mint_interval
        self.clock = clock or time.time

        self.accounts = AccountStore(storage)
        self.allowances = AllowanceStore(storage)
        self.event_log = EventLog(storage) if self.config.enable_event_log else None
        if self.config.enable_event_dispatch:
            self.dispatcher = dispatcher or EventDispatcher()
        else:
            self.dispatcher = None

        self.deployment_receipt: Optional[Receipt] = None
        self.logger = get_logger("token_ledger.ledger")
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def deploy(
        cls,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: int,
        deployer: str,
        storage: Optional[StorageInterface] = None,
        config: Optional[TokenLedgerConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        mint_policy: Union[MintPolicy, str, None] = None,
        mint_interval: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None
    ) -> 'TokenLedger':
        """
        Create a new token and credit ``initial_supply`` to ``deployer``

        Args:
            name: Token name
            symbol: Token symbol
            decimals: Display precision (0-255)
            initial_supply: Base units minted to the deployer
            deployer: Deploying account; becomes ``owner``
            storage: Host storage (defaults to the configured backend)
            config: Settings (defaults to the global configuration)
            dispatcher: Subscriber registry for emitted events
            mint_policy: Overrides ``config.mint_policy``
            mint_interval: Overrides ``config.mint_interval_seconds``
            clock: Time source for the mint interval

        Returns:
            The deployed ledger; its ``deployment_receipt`` holds the mint
            notification when ``initial_supply`` > 0

        Raises:
            ValueError: For invalid metadata or already-populated storage
            ZeroAddressTarget: If ``deployer`` is the null identifier
            InvalidAmount: If ``initial_supply`` is out of range
        """
        config = config or get_config()
        storage = storage or create_storage(config)
        metadata = TokenMetadata(name=name, symbol=symbol, decimals=decimals)
        deployer = require_non_null(deployer, "ERC20: mint to the zero address")
        validate_amount(initial_supply)

        if storage.exists(cls.METADATA_TABLE, cls.METADATA_RECORD_ID):
            raise ValueError("Storage already holds a deployed token; use TokenLedger.attach")

        policy = MintPolicy(mint_policy if mint_policy is not None else config.mint_policy)
        interval = config.mint_interval_seconds if mint_interval is None else mint_interval

        ledger = cls(
            storage=storage,
            metadata=metadata,
            owner=deployer,
            mint_policy=policy,
            mint_interval=interval,
            config=config,
            dispatcher=dispatcher,
            clock=clock
        )
        ledger.deployment_receipt = ledger._initialize(initial_supply)
        return ledger

    @classmethod
    def attach(
        cls,
        storage: StorageInterface,
        config: Optional[TokenLedgerConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        clock: Optional[Callable[[], float]] = None
    ) -> 'TokenLedger':
        """
        Re-open a token previously deployed into ``storage``

        Raises:
            ValueError: If no token has been deployed into the storage
        """
        record = storage.load(cls.METADATA_TABLE, cls.METADATA_RECORD_ID)
        if not record:
            raise ValueError("No token deployed in this storage")

        return cls(
            storage=storage,
            metadata=TokenMetadata.from_dict(record),
            owner=record['owner'],
            mint_policy=MintPolicy(record['mint_policy']),
            mint_interval=int(record['mint_interval']),
            config=config,
            dispatcher=dispatcher,
            clock=clock
        )

    def _initialize(self, initial_supply: int) -> Receipt:
        with self._operation("deploy", self.owner, initial_supply=initial_supply) as events:
            record = self.metadata.to_dict()
            record.update({
                'owner': self.owner,
                'mint_policy': self.mint_policy.value,
                'mint_interval': self.mint_interval
            })
            self.storage.save(self.METADATA_TABLE, self.METADATA_RECORD_ID, record)

            if initial_supply > 0:
                self.accounts.increase_supply(initial_supply)
                self.accounts.credit(self.owner, initial_supply)
                events.append(Transfer(NULL_ADDRESS, self.owner, initial_supply))
        return Receipt(True, "deploy", tuple(events))

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def symbol(self) -> str:
        return self.metadata.symbol

    @property
    def decimals(self) -> int:
        return self.metadata.decimals

    def total_supply(self) -> int:
        return self.accounts.total_supply()

    def balance_of(self, account: str) -> int:
        return self.accounts.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.allowance_of(owner, spender)

    def verify_conservation(self) -> bool:
        """True when the sum of all balances equals total supply"""
        with self._lock:
            return self.accounts.sum_balances() == self.accounts.total_supply()

    def history(self, address: Optional[str] = None,
                event_type: Optional[TokenEventType] = None) -> List[LoggedEvent]:
        """Logged events in call order, optionally filtered"""
        if self.event_log is None:
            return []
        return self.event_log.get_events(event_type=event_type, address=address)

    # ------------------------------------------------------------------
    # State-changing operations
    # ------------------------------------------------------------------

    def transfer(self, caller: str, to: str, amount: int) -> Receipt:
        """
        Move ``amount`` from the caller to ``to``

        Raises:
            ZeroAddressTarget: If ``to`` is the null identifier
            InsufficientBalance: If the caller holds less than ``amount``
        """
        with self._operation("transfer", caller, to=to, amount=amount) as events:
            sender = require_non_null(caller, "ERC20: transfer from the zero address")
            recipient = require_non_null(to, "ERC20: transfer to the zero address")
            validate_amount(amount)

            self.accounts.debit(sender, amount)
            self.accounts.credit(recipient, amount)
            events.append(Transfer(sender, recipient, amount))
        return Receipt(True, "transfer", tuple(events))

    def approve(self, caller: str, spender: str, amount: int) -> Receipt:
        """
        Set the caller's allowance for ``spender`` to exactly ``amount``

        Approving UNLIMITED_ALLOWANCE grants a spend limit that is never
        decremented.
        """
        with self._operation("approve", caller, spender=spender, amount=amount) as events:
            owner = require_non_null(caller, "ERC20: approve from the zero address")
            spender = require_non_null(spender, "ERC20: approve to the zero address")
            validate_amount(amount)

            self.allowances.set_allowance(owner, spender, amount)
            events.append(Approval(owner, spender, amount))
        return Receipt(True, "approve", tuple(events))

    def transfer_from(self, caller: str, sender: str, to: str, amount: int) -> Receipt:
        """
        Move ``amount`` from ``sender`` to ``to`` using the caller's allowance

        Raises:
            ZeroAddressTarget: If ``to`` is the null identifier
            InsufficientAllowance: If the caller's allowance is below ``amount``
            InsufficientBalance: If ``sender`` holds less than ``amount``
        """
        with self._operation("transfer_from", caller, sender=sender, to=to, amount=amount) as events:
            spender = require_non_null(caller, CALLER_IS_ZERO)
            source = require_non_null(sender, "ERC20: transfer from the zero address")
            recipient = require_non_null(to, "ERC20: transfer to the zero address")
            validate_amount(amount)

            self.allowances.consume(source, spender, amount)
            self.accounts.debit(source, amount)
            self.accounts.credit(recipient, amount)
            events.append(Transfer(source, recipient, amount))
        return Receipt(True, "transfer_from", tuple(events))

    def increase_allowance(self, caller: str, spender: str, delta: int) -> Receipt:
        """
        Raise the caller's allowance for ``spender`` by ``delta``

        Raises:
            ArithmeticOverflow: If the new allowance would exceed uint256
        """
        with self._operation("increase_allowance", caller, spender=spender, delta=delta) as events:
            owner = require_non_null(caller, "ERC20: approve from the zero address")
            spender = require_non_null(spender, "ERC20: approve to the zero address")
            validate_amount(delta)

            new_total = self.allowances.increase(owner, spender, delta)
            events.append(Approval(owner, spender, new_total))
        return Receipt(True, "increase_allowance", tuple(events))

    def decrease_allowance(self, caller: str, spender: str, delta: int) -> Receipt:
        """
        Lower the caller's allowance for ``spender`` by ``delta``

        Raises:
            AllowanceUnderflow: If ``delta`` exceeds the current allowance
        """
        with self._operation("decrease_allowance", caller, spender=spender, delta=delta) as events:
            owner = require_non_null(caller, "ERC20: approve from the zero address")
            spender = require_non_null(spender, "ERC20: approve to the zero address")
            validate_amount(delta)

            new_total = self.allowances.decrease(owner, spender, delta)
            events.append(Approval(owner, spender, new_total))
        return Receipt(True, "decrease_allowance", tuple(events))

    def mint(self, caller: str, to: str, amount: int) -> Receipt:
        """
        Create ``amount`` new tokens in ``to``'s balance

        Open to any caller under MintPolicy.OPEN; owner-only under
        MintPolicy.OWNER. A non-zero mint interval limits each caller to
        one mint per interval.

        Raises:
            ZeroAddressTarget: If ``to`` is the null identifier
            Unauthorized: If the policy forbids the caller from minting
            MintCooldown: If the caller minted within the interval
            ArithmeticOverflow: If total supply would exceed uint256
        """
        with self._operation("mint", caller, to=to, amount=amount) as events:
            minter = require_non_null(caller, CALLER_IS_ZERO)
            recipient = require_non_null(to, "ERC20: mint to the zero address")
            validate_amount(amount)
            self._authorize_mint(minter)

            self.accounts.increase_supply(amount)
            self.accounts.credit(recipient, amount)
            if self.mint_interval:
                self._record_mint_time(minter)
            events.append(Transfer(NULL_ADDRESS, recipient, amount))
        return Receipt(True, "mint", tuple(events))

    def burn(self, caller: str, amount: int) -> Receipt:
        """
        Destroy ``amount`` of the caller's tokens

        Raises:
            InsufficientBalance: If the caller holds less than ``amount``
        """
        with self._operation("burn", caller, amount=amount) as events:
            holder = require_non_null(caller, "ERC20: burn from the zero address")
            validate_amount(amount)

            self.accounts.debit(holder, amount, "ERC20: burn amount exceeds balance")
            self.accounts.decrease_supply(amount)
            events.append(Transfer(holder, NULL_ADDRESS, amount))
        return Receipt(True, "burn", tuple(events))

    def burn_from(self, caller: str, owner: str, amount: int) -> Receipt:
        """
        Destroy ``amount`` of ``owner``'s tokens using the caller's allowance

        Raises:
            InsufficientAllowance: If the caller's allowance is below ``amount``
            InsufficientBalance: If ``owner`` holds less than ``amount``
        """
        with self._operation("burn_from", caller, owner=owner, amount=amount) as events:
            spender = require_non_null(caller, CALLER_IS_ZERO)
            holder = require_non_null(owner, "ERC20: burn from the zero address")
            validate_amount(amount)

            self.allowances.consume(holder, spender, amount)
            self.accounts.debit(holder, amount, "ERC20: burn amount exceeds balance")
            self.accounts.decrease_supply(amount)
            events.append(Transfer(holder, NULL_ADDRESS, amount))
        return Receipt(True, "burn_from", tuple(events))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _authorize_mint(self, minter: str) -> None:
        if self.mint_policy == MintPolicy.OWNER and minter != self.owner:
            raise Unauthorized()

        if self.mint_interval:
            record = self.storage.load(self.MINT_CLOCK_TABLE, minter)
            if record:
                elapsed = self.clock() - float(record['last_mint_at'])
                if elapsed < self.mint_interval:
                    raise MintCooldown(
                        f"ERC20: mint interval has not elapsed, "
                        f"{math.ceil(self.mint_interval - elapsed)}s remaining"
                    )

    def _record_mint_time(self, minter: str) -> None:
        self.storage.save(self.MINT_CLOCK_TABLE, minter, {
            'minter': minter,
            'last_mint_at': self.clock()
        })

    @contextmanager
    def _operation(self, operation: str, caller: str, **details):
        """
        Run one ledger call atomically

        Yields a list the operation appends its events to. The events are
        logged inside the storage transaction and published after commit.
        """
        events: List[TokenEvent] = []
        with self._lock:
            try:
                with self.storage.atomic():
                    yield events
                    if self.event_log is not None:
                        self.event_log.append_many(events, operation, caller)
            except LedgerError as e:
                log_action(
                    self.logger, "warning", f"{operation} rejected: {e.message}",
                    caller=caller, action=operation, resource=f"token:{self.metadata.symbol}",
                    extra=self._log_details(details, code=e.code)
                )
                raise

        log_action(
            self.logger, "info", f"{operation} succeeded",
            caller=caller, action=operation, resource=f"token:{self.metadata.symbol}",
            extra=self._log_details(details, events=[f"{e.name}{e.args}" for e in events])
        )

        if self.dispatcher is not None:
            self.dispatcher.publish_many(events)

    @staticmethod
    def _log_details(details: Dict, **more) -> Dict:
        extra = {k: (str(v) if isinstance(v, int) and not isinstance(v, bool) else v)
                 for k, v in details.items()}
        extra.update(more)
        return extra
