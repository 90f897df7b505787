"""
Collection events.

Every successful state change emits one of these records. They are kept
in an ``EventLog`` and pushed to any subscribed indexer callbacks.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

from ..logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferSingle:
    """Mint (from = zero address), burn (to = zero address) or transfer."""
    operator: str
    sender: str
    recipient: str
    type_id: int
    value: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TransferSingle",
            "operator": self.operator,
            "from": self.sender,
            "to": self.recipient,
            "id": self.type_id,
            "value": self.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TransferBatch:
    operator: str
    sender: str
    recipient: str
    type_ids: Tuple[int, ...]
    values: Tuple[int, ...]
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TransferBatch",
            "operator": self.operator,
            "from": self.sender,
            "to": self.recipient,
            "ids": list(self.type_ids),
            "values": list(self.values),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ApprovalForAll:
    owner: str
    operator: str
    approved: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ApprovalForAll",
            "owner": self.owner,
            "operator": self.operator,
            "approved": self.approved,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class URIChanged:
    """Emitted when the base URI changes."""
    uri: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "URI", "value": self.uri, "timestamp": self.timestamp}


@dataclass(frozen=True)
class ReleaseTimestampChanged:
    release_timestamp: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ReleaseTimestampChanged",
            "releaseTimestamp": self.release_timestamp,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SaleStateChanged:
    is_open: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "SaleStateChanged",
            "isOpen": self.is_open,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Paused:
    account: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "Paused", "account": self.account, "timestamp": self.timestamp}


@dataclass(frozen=True)
class Unpaused:
    account: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": "Unpaused", "account": self.account, "timestamp": self.timestamp}


@dataclass(frozen=True)
class RoyaltyChanged:
    receiver: str
    basis_points: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RoyaltyChanged",
            "receiver": self.receiver,
            "basisPoints": self.basis_points,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Withdrawal:
    recipient: str
    amount: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Withdrawal",
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  EVENT LOG
# ══════════════════════════════════════════════════════════════════════

class EventLog:
    """
    Append-only record of emitted events.

    Subscribers (e.g. an off-chain indexer) receive each event after it is
    recorded. A subscriber that raises does not undo the state change that
    produced the event; the error is logged and the remaining subscribers
    are still notified.
    """

    def __init__(self):
        self._events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []

    def emit(self, event: Any) -> Any:
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event subscriber failed on {type(event).__name__}")
        return event

    def subscribe(self, callback: Callable[[Any], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Any], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)
