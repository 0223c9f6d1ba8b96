"""
Tests for token events and the event dispatcher
"""

import pytest
from unittest.mock import Mock

from token_ledger.addresses import NULL_ADDRESS
from token_ledger.events import (
    Approval, EventDispatcher, TokenEvent, TokenEventType, Transfer
)


ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


class TestTokenEvents:
    """Test event values"""

    def test_transfer_args_order(self):
        """Test Transfer arguments are (from, to, value)"""
        event = Transfer(ALICE, BOB, 100)

        assert event.name == "Transfer"
        assert event.event_type == TokenEventType.TRANSFER
        assert event.args == (ALICE, BOB, 100)

    def test_approval_args_order(self):
        """Test Approval arguments are (owner, spender, value)"""
        event = Approval(ALICE, BOB, 5)

        assert event.name == "Approval"
        assert event.args == (ALICE, BOB, 5)

    def test_events_are_immutable(self):
        """Test events cannot be altered after emission"""
        event = Transfer(ALICE, BOB, 100)

        with pytest.raises(AttributeError):
            event.value = 1

    def test_equality(self):
        """Test events compare by kind and arguments"""
        assert Transfer(ALICE, BOB, 1) == Transfer(ALICE, BOB, 1)
        assert Transfer(ALICE, BOB, 1) != Approval(ALICE, BOB, 1)

    def test_involves(self):
        """Test address matching across event arguments"""
        event = Transfer(NULL_ADDRESS, ALICE, 100)

        assert event.involves(ALICE)
        assert event.involves(ALICE.upper().replace("0X", "0x"))
        assert not event.involves(BOB)
        assert event.addresses() == (NULL_ADDRESS, ALICE)

    def test_involves_without_prefix(self):
        """Test unprefixed identifiers match like every other accessor"""
        event = Transfer(ALICE, BOB, 1)

        assert event.involves(BOB[2:])
        assert event.involves(BOB[2:].upper())

    def test_dict_form(self):
        """Test values serialise as decimal strings"""
        value = 2 ** 256 - 1
        data = Approval(ALICE, BOB, value).to_dict()

        assert data == {'event': "Approval", 'owner': ALICE, 'spender': BOB, 'value': str(value)}
        assert TokenEvent.from_dict(data) == Approval(ALICE, BOB, value)


class TestEventDispatcher:
    """Test publish/subscribe delivery"""

    def test_subscribe_and_publish(self):
        """Test typed subscribers receive only their event kind"""
        dispatcher = EventDispatcher()
        transfer_handler = Mock()
        approval_handler = Mock()
        dispatcher.subscribe(TokenEventType.TRANSFER, transfer_handler)
        dispatcher.subscribe(TokenEventType.APPROVAL, approval_handler)

        event = Transfer(ALICE, BOB, 10)
        dispatcher.publish(event)

        transfer_handler.assert_called_once_with(event)
        approval_handler.assert_not_called()

    def test_global_subscriber(self):
        """Test catch-all subscribers receive every event"""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.publish_many([Transfer(ALICE, BOB, 1), Approval(ALICE, BOB, 2)])

        assert handler.call_count == 2

    def test_unsubscribe(self):
        """Test removed handlers stop receiving events"""
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(TokenEventType.TRANSFER, handler)
        dispatcher.unsubscribe(TokenEventType.TRANSFER, handler)

        dispatcher.publish(Transfer(ALICE, BOB, 1))

        handler.assert_not_called()

    def test_unsubscribe_unknown_handler(self):
        """Test removing a handler that was never added is harmless"""
        dispatcher = EventDispatcher()

        dispatcher.unsubscribe(TokenEventType.TRANSFER, Mock())
        dispatcher.unsubscribe_all(Mock())

        assert dispatcher.get_handler_count() == 0

    def test_handler_error_isolated(self):
        """Test a failing handler does not stop later handlers"""
        dispatcher = EventDispatcher()
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        dispatcher.subscribe(TokenEventType.TRANSFER, failing)
        dispatcher.subscribe(TokenEventType.TRANSFER, healthy)

        dispatcher.publish(Transfer(ALICE, BOB, 1))

        failing.assert_called_once()
        healthy.assert_called_once()

    def test_handler_counts_and_clear(self):
        """Test handler counting per kind and in total"""
        dispatcher = EventDispatcher()
        dispatcher.subscribe(TokenEventType.TRANSFER, Mock())
        dispatcher.subscribe(TokenEventType.TRANSFER, Mock())
        dispatcher.subscribe_all(Mock())

        assert dispatcher.get_handler_count(TokenEventType.TRANSFER) == 2
        assert dispatcher.get_handler_count(TokenEventType.APPROVAL) == 0
        assert dispatcher.get_handler_count() == 3

        dispatcher.clear()
        assert dispatcher.get_handler_count() == 0
