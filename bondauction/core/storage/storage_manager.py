import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from bondauction.core.storage.sqlite_adapter import SQLiteAdapter
from bondauction.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages persistent storage for auctions.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Audit events (append-only)
    - Auction parameter and result snapshots
    """

    def __init__(self, data_dir: Path, db_name: str = "auction.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Events
    # =========================================================================

    @contextmanager
    def record_event(
        self,
        auction_id: bytes,
        seq: int,
        name: str,
        payload: str,
        timestamp: int,
        snapshot: Optional[Dict[str, Any]] = None,
    ) -> Iterator[None]:
        """
        Write an audit event, and optionally a snapshot, around a block.

        The rows are inserted before the block runs, so a storage failure
        surfaces before any state changes. They are committed when the block
        completes and rolled back if it raises.
        """
        with self.adapter.transaction():
            self.adapter.save_event(auction_id, seq, name, payload, timestamp)
            if snapshot:
                self.save_auction(auction_id, snapshot)
            yield

    def load_events(self, auction_id: bytes) -> List:
        """
        Load the audit trail of an auction.

        Returns:
            Events in emission order, rebuilt as AuctionEvent instances
        """
        from bondauction.core.events import event_from_dict

        return [
            event_from_dict(name, json.loads(payload))
            for _, name, payload, _ in self.adapter.get_events(auction_id)
        ]

    def event_count(self, auction_id: bytes) -> int:
        return self.adapter.get_event_count(auction_id)

    # =========================================================================
    # Auction Snapshots
    # =========================================================================

    def save_auction(self, auction_id: bytes, snapshot: Dict[str, Any]):
        """Persist a snapshot of auction parameters and results."""
        with self.adapter.transaction():
            for key, value in snapshot.items():
                self.adapter.set_meta(auction_id, key, json.dumps(value))

    def load_auction(self, auction_id: bytes) -> Optional[Dict[str, Any]]:
        """Load a snapshot saved with save_auction, or None if unknown."""
        if auction_id not in self.adapter.get_auction_ids():
            return None
        keys = ("bond_supply", "min_price", "max_price", "commit_deadline",
                "reveal_deadline", "claim_deadline", "state", "clearing_price",
                "total_allocated", "operator")
        snapshot = {}
        for key in keys:
            raw = self.adapter.get_meta(auction_id, key)
            if raw is not None:
                snapshot[key] = json.loads(raw)
        return snapshot

    def auction_ids(self) -> List[bytes]:
        return self.adapter.get_auction_ids()

    def close(self):
        self.adapter.close()
