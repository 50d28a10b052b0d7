"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction audit events
- Auction parameter and result snapshots
"""

from bondauction.core.storage.sqlite_adapter import SQLiteAdapter
from bondauction.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
