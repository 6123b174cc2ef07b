"""Append-only, size-bounded log of healing attempts."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..core.errors import StorageError
from ..core.models import HealingHistoryEntry, HealingResult
from .database import SQLiteDatabase
from .queries import (
    INSERT_HISTORY_ENTRY,
    REPLACE_HISTORY_ENTRY,
    COUNT_HISTORY_ENTRIES,
    DELETE_OLDEST_HISTORY_ENTRIES,
    SELECT_HISTORY_BY_STEP,
    SELECT_ALL_HISTORY,
    SELECT_HISTORY_BY_HEALING_ID,
    DELETE_ALL_HISTORY,
)

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 1000


class HistoryStore(ABC):
    """
    Abstract healing history storage.

    Entries are returned newest first. When the store is at capacity the
    oldest entries are evicted before a new one is added.
    """

    @abstractmethod
    async def add(self, entry: HealingHistoryEntry) -> None:
        pass

    @abstractmethod
    async def get_by_step_id(self, step_id: str) -> List[HealingHistoryEntry]:
        pass

    @abstractmethod
    async def get_all(self) -> List[HealingHistoryEntry]:
        pass

    @abstractmethod
    async def get_by_healing_id(self, healing_id: str) -> Optional[HealingHistoryEntry]:
        pass

    @abstractmethod
    async def update(self, entry: HealingHistoryEntry) -> None:
        """Replace an entry by id (confirmation flags only)."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


def _entry_to_row(entry: HealingHistoryEntry) -> tuple:
    return (
        entry.id,
        entry.step_id,
        entry.result.healing_id,
        entry.timestamp,
        entry.original_description,
        entry.failure_reason,
        json.dumps(entry.result.to_dict()),
        int(entry.user_confirmed),
        int(entry.fingerprint_updated),
    )


def _row_to_entry(row: Sequence[Any]) -> HealingHistoryEntry:
    (entry_id, step_id, _healing_id, timestamp, original_description,
     failure_reason, result, user_confirmed, fingerprint_updated) = row
    return HealingHistoryEntry(
        id=entry_id,
        step_id=step_id,
        timestamp=timestamp,
        original_description=original_description,
        failure_reason=failure_reason,
        result=HealingResult.from_dict(json.loads(result)),
        user_confirmed=bool(user_confirmed),
        fingerprint_updated=bool(fingerprint_updated),
    )


class SQLiteHistoryStore(HistoryStore):
    """History store backed by the `healing_history` table."""

    def __init__(self, database: SQLiteDatabase, max_items: int = MAX_HISTORY_ITEMS):
        """
        Args:
            database: Shared healing database
            max_items: Maximum number of entries kept
        """
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self.database = database
        self.max_items = max_items

    async def add(self, entry: HealingHistoryEntry) -> None:
        try:
            evicted = await self.database.run("add_history_entry", self._add_sync, entry)
        except StorageError as e:
            logger.error(f"Failed to add history entry for step {entry.step_id}: {e}")
            return

        if evicted:
            logger.debug(f"Evicted {evicted} oldest history entries (cap {self.max_items})")

    async def get_by_step_id(self, step_id: str) -> List[HealingHistoryEntry]:
        try:
            return await self.database.run(
                "get_history_by_step", self._select_many_sync, SELECT_HISTORY_BY_STEP, (step_id,)
            )
        except StorageError as e:
            logger.error(f"Failed to get history for step {step_id}: {e}")
            return []

    async def get_all(self) -> List[HealingHistoryEntry]:
        try:
            return await self.database.run(
                "get_all_history", self._select_many_sync, SELECT_ALL_HISTORY, ()
            )
        except StorageError as e:
            logger.error(f"Failed to get all history: {e}")
            return []

    async def get_by_healing_id(self, healing_id: str) -> Optional[HealingHistoryEntry]:
        try:
            entries = await self.database.run(
                "get_history_by_healing_id",
                self._select_many_sync,
                SELECT_HISTORY_BY_HEALING_ID,
                (healing_id,),
            )
        except StorageError as e:
            logger.error(f"Failed to get history by healing id {healing_id}: {e}")
            return None
        return entries[0] if entries else None

    async def update(self, entry: HealingHistoryEntry) -> None:
        try:
            await self.database.run("update_history_entry", self._update_sync, entry)
        except StorageError as e:
            logger.error(f"Failed to update history entry {entry.id}: {e}")

    async def clear(self) -> None:
        try:
            await self.database.run("clear_history", self._clear_sync)
        except StorageError as e:
            logger.error(f"Failed to clear history: {e}")

    async def count(self) -> int:
        try:
            return await self.database.run("count_history", self._count_sync)
        except StorageError as e:
            logger.error(f"Failed to count history: {e}")
            return 0

    # Blocking implementations, run in the executor

    def _add_sync(self, entry: HealingHistoryEntry) -> int:
        with self.database.transaction() as conn:
            total = conn.execute(COUNT_HISTORY_ENTRIES).fetchone()[0]
            overflow = total - self.max_items + 1
            if overflow > 0:
                conn.execute(DELETE_OLDEST_HISTORY_ENTRIES, (overflow,))
            conn.execute(INSERT_HISTORY_ENTRY, _entry_to_row(entry))
        return max(overflow, 0)

    def _select_many_sync(self, query: str, params: tuple) -> List[HealingHistoryEntry]:
        with self.database.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_entry(row) for row in rows]

    def _update_sync(self, entry: HealingHistoryEntry) -> None:
        entry_id, *values = _entry_to_row(entry)
        with self.database.transaction() as conn:
            conn.execute(REPLACE_HISTORY_ENTRY, (*values, entry_id))

    def _clear_sync(self) -> None:
        with self.database.transaction() as conn:
            conn.execute(DELETE_ALL_HISTORY)

    def _count_sync(self) -> int:
        with self.database.connect() as conn:
            return conn.execute(COUNT_HISTORY_ENTRIES).fetchone()[0]
