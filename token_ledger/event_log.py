"""
Event Log Module

Durable, append-only record of every Transfer and Approval the ledger emits,
in call order. Entries are hash-chained with SHA-256 for tamper detection.
Appends happen inside the ledger's storage transaction, so a rejected call
leaves no trace here.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .addresses import normalize_address
from .events import TokenEvent, TokenEventType
from .storage import StorageInterface, StorageRecord


@dataclass
class LoggedEvent(StorageRecord):
    """
    Immutable log entry wrapping one emitted event
    """
    sequence: int
    event: TokenEvent
    operation: str      # Ledger operation that emitted the event
    caller: Optional[str]
    previous_hash: str
    current_hash: str

    def calculate_hash(self) -> str:
        """
        SHA-256 over every field except current_hash
        """
        hash_data = {
            'id': self.id,
            'sequence': self.sequence,
            'created_at': self.created_at.isoformat(),
            'event': self.event.to_dict(),
            'operation': self.operation,
            'caller': self.caller,
            'previous_hash': self.previous_hash
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'sequence': self.sequence,
            'event': self.event.to_dict(),
            'event_name': self.event.name,
            'addresses': list(self.event.addresses()),
            'operation': self.operation,
            'caller': self.caller,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoggedEvent':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            sequence=int(data['sequence']),
            event=TokenEvent.from_dict(data['event']),
            operation=data['operation'],
            caller=data.get('caller'),
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash']
        )


class EventLog:
    """
    Hash-chained event sink backed by host storage

    Record ids are the zero-padded sequence number, so the head of the
    chain is always ``count_events()``.
    """

    def __init__(self, storage: StorageInterface, table_name: str = "token_events"):
        self.storage = storage
        self.table_name = table_name
        self._lock = threading.Lock()

    @staticmethod
    def _record_id(sequence: int) -> str:
        return f"{sequence:012d}"

    def _head(self) -> Optional[Dict[str, Any]]:
        count = self.storage.count(self.table_name)
        if count == 0:
            return None
        return self.storage.load(self.table_name, self._record_id(count))

    def append(self, event: TokenEvent, operation: str, caller: Optional[str] = None) -> LoggedEvent:
        """
        Append one event to the chain

        Args:
            event: The emitted Transfer or Approval
            operation: Name of the ledger operation that emitted it
            caller: Account that issued the call

        Returns:
            The stored LoggedEvent
        """
        with self._lock:
            head = self._head()
            sequence = int(head['sequence']) + 1 if head else 1
            now = datetime.now(timezone.utc)

            entry = LoggedEvent(
                id=self._record_id(sequence),
                created_at=now,
                updated_at=now,
                sequence=sequence,
                event=event,
                operation=operation,
                caller=caller,
                previous_hash=head['current_hash'] if head else "",
                current_hash=""
            )
            entry.current_hash = entry.calculate_hash()

            self.storage.save(self.table_name, entry.id, entry.to_dict())
            return entry

    def append_many(self, events: Iterable[TokenEvent], operation: str,
                    caller: Optional[str] = None) -> List[LoggedEvent]:
        return [self.append(event, operation, caller) for event in events]

    def get_events(
        self,
        event_type: Optional[TokenEventType] = None,
        address: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[LoggedEvent]:
        """
        Get logged events in call order

        Args:
            event_type: Only events of this kind
            address: Only events naming this account in any argument
                (raises InvalidAddress if malformed)
            limit: Return only the most recent N matches

        Returns:
            List of LoggedEvent sorted by sequence
        """
        if address:
            address = normalize_address(address)

        entries = [LoggedEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]

        if event_type:
            entries = [e for e in entries if e.event.event_type == event_type]
        if address:
            entries = [e for e in entries if e.event.involves(address)]

        entries.sort(key=lambda e: e.sequence)

        if limit:
            entries = entries[-limit:]
        return entries

    def get_event(self, sequence: int) -> Optional[LoggedEvent]:
        data = self.storage.load(self.table_name, self._record_id(sequence))
        if data:
            return LoggedEvent.from_dict(data)
        return None

    def count_events(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        head = self._head()
        return head['current_hash'] if head else None

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify every entry's hash and the continuity of the chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
            'sequence_gaps': []
        }

        entries = self.get_events()
        result['total_events'] = len(entries)

        previous_hash = ""
        for position, entry in enumerate(entries, start=1):
            if not entry.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'sequence': entry.sequence,
                    'expected_hash': entry.calculate_hash(),
                    'actual_hash': entry.current_hash
                })
            if entry.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'sequence': entry.sequence,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': entry.previous_hash
                })
            if entry.sequence != position:
                result['valid'] = False
                result['sequence_gaps'].append({
                    'expected_sequence': position,
                    'actual_sequence': entry.sequence
                })
            previous_hash = entry.current_hash

        return result
