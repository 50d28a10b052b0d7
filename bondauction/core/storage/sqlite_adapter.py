import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, List, Tuple

from bondauction.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for the auction audit trail.

    Provides:
    1. Event log: append-only (auction_id, seq) -> event record.
    2. Auction metadata: per-auction key/value snapshot of parameters
       and clearing results.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Event log, one row per emitted event
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    auction_id BLOB NOT NULL,
                    seq INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    PRIMARY KEY (auction_id, seq)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_name ON events(name);")

            # 2. Auction metadata
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auction_meta (
                    auction_id BLOB NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT,
                    PRIMARY KEY (auction_id, key)
                )
            """)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Group writes made on this thread into one transaction.

        Commits when the outermost block exits cleanly and rolls back if it
        raises. Nested blocks join the enclosing transaction.
        """
        conn = self._get_conn()
        if getattr(self._conn_local, "in_transaction", False):
            yield conn
            return

        self._conn_local.in_transaction = True
        try:
            with conn:
                yield conn
        finally:
            self._conn_local.in_transaction = False

    # =========================================================================
    # Event Operations
    # =========================================================================

    def save_event(self, auction_id: bytes, seq: int, name: str, payload: str, timestamp: int):
        """Append an event. Sequence numbers are never overwritten."""
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO events (auction_id, seq, name, payload, timestamp) VALUES (?, ?, ?, ?, ?)",
                (auction_id, seq, name, payload, timestamp)
            )

    def get_events(self, auction_id: bytes) -> List[Tuple[int, str, str, int]]:
        """Get all (seq, name, payload, timestamp) for an auction, in order."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT seq, name, payload, timestamp FROM events WHERE auction_id = ? ORDER BY seq ASC",
            (auction_id,)
        )
        return [(row['seq'], row['name'], row['payload'], row['timestamp']) for row in cursor]

    def get_event_count(self, auction_id: bytes) -> int:
        conn = self._get_conn()
        cursor = conn.execute("SELECT COUNT(*) as cnt FROM events WHERE auction_id = ?", (auction_id,))
        return cursor.fetchone()['cnt']

    # =========================================================================
    # Metadata Operations
    # =========================================================================

    def set_meta(self, auction_id: bytes, key: str, value: str):
        with self.transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO auction_meta (auction_id, key, value) VALUES (?, ?, ?)",
                (auction_id, key, value)
            )

    def get_meta(self, auction_id: bytes, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT value FROM auction_meta WHERE auction_id = ? AND key = ?",
            (auction_id, key)
        )
        row = cursor.fetchone()
        return row['value'] if row else None

    def get_auction_ids(self) -> List[bytes]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT DISTINCT auction_id FROM auction_meta")
        return [bytes(row['auction_id']) for row in cursor]

    def close(self):
        """Close the connection owned by the current thread."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
