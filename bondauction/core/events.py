"""
Audit Events - the append-only record of everything the auction accepted.

Each successful operation emits exactly one event. The log is the
external audit trail: the issuer's bid monitor, settlement reporting and
persistence all read it rather than reaching into engine state.
"""

import json
from contextlib import contextmanager
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from bondauction.crypto import bytes_to_hex, hex_to_bytes
from bondauction.utils.logger import get_logger

logger = get_logger("events")


# =============================================================================
# Event Types
# =============================================================================


@dataclass(frozen=True)
class AuctionEvent:
    """Common base; `timestamp` is the auction clock at emission."""
    timestamp: int

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation (bytes as 0x-hex)."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = bytes_to_hex(value) if isinstance(value, bytes) else value
        return data


@dataclass(frozen=True)
class BidCommitted(AuctionEvent):
    bidder: bytes
    commitment: bytes
    encrypted_bid: bytes


@dataclass(frozen=True)
class BidRevealed(AuctionEvent):
    bidder: bytes
    price: int
    quantity: int


@dataclass(frozen=True)
class AuctionFinalized(AuctionEvent):
    clearing_price: int
    total_allocated: int


@dataclass(frozen=True)
class TokensClaimed(AuctionEvent):
    bidder: bytes
    allocation: int
    payment: int


@dataclass(frozen=True)
class ProceedsWithdrawn(AuctionEvent):
    operator: bytes
    amount: int


EVENT_TYPES: Dict[str, Type[AuctionEvent]] = {
    cls.__name__: cls
    for cls in (BidCommitted, BidRevealed, AuctionFinalized, TokensClaimed, ProceedsWithdrawn)
}

_BYTES_FIELDS = {"bidder", "commitment", "encrypted_bid", "operator"}


def event_from_dict(name: str, data: Dict[str, Any]) -> AuctionEvent:
    """Rebuild an event from its persisted form."""
    cls = EVENT_TYPES.get(name)
    if cls is None:
        raise ValueError(f"Unknown event type: {name}")
    kwargs = {
        key: hex_to_bytes(value) if key in _BYTES_FIELDS else value
        for key, value in data.items()
    }
    return cls(**kwargs)


# =============================================================================
# Event Log
# =============================================================================

E = TypeVar("E", bound=AuctionEvent)


class EventLog:
    """
    Append-only sequence of auction events.

    Args:
        auction_id: Identifier the events are filed under when persisted
        storage_manager: Persistence manager. None = in-memory only.
    """

    def __init__(self, auction_id: bytes = b"", storage_manager=None):
        self.auction_id = auction_id
        self.storage_manager = storage_manager
        self._events: List[AuctionEvent] = []

    @contextmanager
    def record(self, event: AuctionEvent, snapshot: Optional[Dict[str, Any]] = None) -> Iterator[None]:
        """
        Emit an event for the operation run inside the block.

        With storage attached the event (and snapshot) is written before
        the block and committed after it, or rolled back if it raises. The
        event joins the in-memory log only once it is durable.
        """
        seq = len(self._events)
        if self.storage_manager:
            with self.storage_manager.record_event(
                self.auction_id,
                seq,
                event.name,
                json.dumps(event.to_dict()),
                event.timestamp,
                snapshot,
            ):
                yield
        else:
            yield

        self._events.append(event)
        logger.debug(f"Event #{seq}: {event.name}")

    def append(self, event: AuctionEvent, snapshot: Optional[Dict[str, Any]] = None) -> None:
        with self.record(event, snapshot):
            pass

    def of_type(self, event_type: Type[E]) -> List[E]:
        """All events of a given type, in emission order."""
        return [e for e in self._events if isinstance(e, event_type)]

    def last(self) -> Optional[AuctionEvent]:
        return self._events[-1] if self._events else None

    def __iter__(self) -> Iterator[AuctionEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> AuctionEvent:
        return self._events[index]


__all__ = [
    "AuctionEvent",
    "BidCommitted",
    "BidRevealed",
    "AuctionFinalized",
    "TokensClaimed",
    "ProceedsWithdrawn",
    "EVENT_TYPES",
    "event_from_dict",
    "EventLog",
]
