"""
Unit tests for SQLite persistence.
"""

import json
import sqlite3

import pytest

from bondauction.core.events import AuctionFinalized, BidRevealed
from bondauction.core.storage import SQLiteAdapter, StorageManager

AUCTION_ID = b"\x11" * 32
OTHER_ID = b"\x22" * 32
BIDDER = b"\xab" * 20


@pytest.fixture
def adapter(tmp_path):
    adapter = SQLiteAdapter(tmp_path / "db" / "auction.db")
    yield adapter
    adapter.close()


@pytest.fixture
def storage(tmp_path):
    manager = StorageManager(data_dir=tmp_path)
    yield manager
    manager.close()


class TestSQLiteAdapter:

    def test_creates_parent_directory(self, adapter, tmp_path):
        assert (tmp_path / "db" / "auction.db").exists()

    def test_events_in_order(self, adapter):
        adapter.save_event(AUCTION_ID, 1, "B", "{}", 20)
        adapter.save_event(AUCTION_ID, 0, "A", "{}", 10)
        adapter.save_event(OTHER_ID, 0, "C", "{}", 30)

        assert adapter.get_events(AUCTION_ID) == [(0, "A", "{}", 10), (1, "B", "{}", 20)]
        assert adapter.get_event_count(AUCTION_ID) == 2
        assert adapter.get_event_count(OTHER_ID) == 1

    def test_sequence_numbers_are_not_overwritten(self, adapter):
        adapter.save_event(AUCTION_ID, 0, "A", "{}", 10)
        with pytest.raises(sqlite3.IntegrityError):
            adapter.save_event(AUCTION_ID, 0, "B", "{}", 11)

    def test_meta(self, adapter):
        assert adapter.get_meta(AUCTION_ID, "state") is None
        adapter.set_meta(AUCTION_ID, "state", '"COMMIT"')
        adapter.set_meta(AUCTION_ID, "state", '"REVEAL"')
        assert adapter.get_meta(AUCTION_ID, "state") == '"REVEAL"'
        assert adapter.get_auction_ids() == [AUCTION_ID]

    def test_nested_transaction_commits_once(self, adapter):
        with pytest.raises(RuntimeError):
            with adapter.transaction():
                adapter.save_event(AUCTION_ID, 0, "A", "{}", 10)
                adapter.set_meta(AUCTION_ID, "state", '"COMMIT"')
                raise RuntimeError("abort")

        assert adapter.get_event_count(AUCTION_ID) == 0
        assert adapter.get_meta(AUCTION_ID, "state") is None


class TestStorageManager:

    def test_event_roundtrip(self, storage):
        events = [
            BidRevealed(timestamp=1, bidder=BIDDER, price=90, quantity=10),
            AuctionFinalized(timestamp=2, clearing_price=90, total_allocated=10),
        ]
        for seq, event in enumerate(events):
            with storage.record_event(AUCTION_ID, seq, event.name, json.dumps(event.to_dict()), event.timestamp):
                pass

        assert storage.load_events(AUCTION_ID) == events
        assert storage.event_count(AUCTION_ID) == 2
        assert storage.load_events(OTHER_ID) == []

    def test_event_and_snapshot_commit_together(self, storage):
        with storage.record_event(AUCTION_ID, 0, "AuctionFinalized", "{}", 5, {"state": "FINALIZED"}):
            pass

        assert storage.event_count(AUCTION_ID) == 1
        assert storage.load_auction(AUCTION_ID) == {"state": "FINALIZED"}

    def test_failed_block_rolls_back(self, storage):
        storage.save_auction(AUCTION_ID, {"state": "COMMIT"})

        with pytest.raises(RuntimeError):
            with storage.record_event(AUCTION_ID, 0, "AuctionFinalized", "{}", 5, {"state": "FINALIZED"}):
                raise RuntimeError("operation failed")

        assert storage.event_count(AUCTION_ID) == 0
        assert storage.load_auction(AUCTION_ID) == {"state": "COMMIT"}

        # The sequence number is free again
        with storage.record_event(AUCTION_ID, 0, "AuctionFinalized", "{}", 6):
            pass
        assert storage.event_count(AUCTION_ID) == 1

    def test_duplicate_sequence_fails_before_block(self, storage):
        with storage.record_event(AUCTION_ID, 0, "A", "{}", 1):
            pass

        ran = []
        with pytest.raises(sqlite3.IntegrityError):
            with storage.record_event(AUCTION_ID, 0, "B", "{}", 2):
                ran.append(True)
        assert ran == []

    def test_snapshot(self, storage):
        snapshot = {
            "bond_supply": 10**23,
            "min_price": 85 * 10**18,
            "state": "COMMIT",
            "operator": "0x" + "ab" * 20,
        }
        storage.save_auction(AUCTION_ID, snapshot)
        storage.save_auction(AUCTION_ID, {"state": "FINALIZED"})

        loaded = storage.load_auction(AUCTION_ID)
        assert loaded["bond_supply"] == 10**23
        assert loaded["state"] == "FINALIZED"
        assert loaded["operator"] == "0x" + "ab" * 20
        assert storage.auction_ids() == [AUCTION_ID]

    def test_unknown_auction(self, storage):
        assert storage.load_auction(OTHER_ID) is None

    def test_reopen(self, tmp_path):
        first = StorageManager(data_dir=tmp_path, db_name="reopen.db")
        first.save_auction(AUCTION_ID, {"state": "REVEAL"})
        first.close()

        second = StorageManager(data_dir=tmp_path, db_name="reopen.db")
        assert second.load_auction(AUCTION_ID) == {"state": "REVEAL"}
        second.close()
