"""
Token Event Module

Transfer and Approval notifications emitted by the ledger, plus a
publish/subscribe dispatcher for consumers that want them as they happen.
"""

from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple
from dataclasses import dataclass, fields
import logging
from threading import RLock

from .addresses import normalize_address


class TokenEventType(Enum):
    """Notification kinds, named as they appear in event logs"""
    TRANSFER = "Transfer"
    APPROVAL = "Approval"


@dataclass(frozen=True)
class TokenEvent:
    """
    Base class for ledger notifications

    Field declaration order on subclasses is the canonical argument order.
    """
    event_type: ClassVar[TokenEventType]

    @property
    def name(self) -> str:
        return self.event_type.value

    @property
    def args(self) -> Tuple[Any, ...]:
        """Event arguments in canonical order"""
        return tuple(getattr(self, f.name) for f in fields(self))

    def addresses(self) -> Tuple[str, ...]:
        return tuple(value for value in self.args if isinstance(value, str))

    def involves(self, address: str) -> bool:
        return normalize_address(address) in self.addresses()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization; values as decimal strings"""
        result: Dict[str, Any] = {'event': self.name}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, int) else value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenEvent':
        """Rebuild the concrete event class from its dictionary form"""
        event_cls = _EVENT_CLASSES[TokenEventType(data['event'])]
        kwargs = {}
        for f in fields(event_cls):
            value = data[f.name]
            kwargs[f.name] = int(value) if f.type in (int, 'int') else value
        return event_cls(**kwargs)


@dataclass(frozen=True)
class Transfer(TokenEvent):
    """Tokens moved; the null identifier marks mint (sender) or burn (recipient)"""
    event_type: ClassVar[TokenEventType] = TokenEventType.TRANSFER

    sender: str
    recipient: str
    value: int


@dataclass(frozen=True)
class Approval(TokenEvent):
    """Allowance of ``spender`` over ``owner``'s balance is now ``value``"""
    event_type: ClassVar[TokenEventType] = TokenEventType.APPROVAL

    owner: str
    spender: str
    value: int


_EVENT_CLASSES = {
    TokenEventType.TRANSFER: Transfer,
    TokenEventType.APPROVAL: Approval,
}


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[TokenEventType, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_type: TokenEventType, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: TokenEventType, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Remove a catch-all handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: TokenEvent) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        self.logger.debug(f"Publishing {event.name}{event.args}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Subscribers never affect an already committed ledger call
                self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.name}: {e}")

    def publish_many(self, events: List[TokenEvent]) -> None:
        for event in events:
            self.publish(event)

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[TokenEventType] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
