"""Persistence for fingerprints and healing history."""

from .database import SQLiteDatabase
from .fingerprint_store import FingerprintStore, SQLiteFingerprintStore
from .history_store import HistoryStore, SQLiteHistoryStore, MAX_HISTORY_ITEMS

__all__ = [
    "SQLiteDatabase",
    "FingerprintStore",
    "SQLiteFingerprintStore",
    "HistoryStore",
    "SQLiteHistoryStore",
    "MAX_HISTORY_ITEMS"
]
