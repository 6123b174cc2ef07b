"""Keyed persistence of one semantic fingerprint per test step."""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..core.errors import StorageError
from ..core.logging_config import get_healing_logger
from ..core.models import Rect, SemanticFingerprint, now_ms
from .database import SQLiteDatabase
from .queries import (
    INSERT_FINGERPRINT,
    REPLACE_FINGERPRINT,
    SELECT_FINGERPRINT_BY_STEP,
    SELECT_ALL_FINGERPRINTS,
    DELETE_FINGERPRINT_BY_STEP,
    DELETE_ALL_FINGERPRINTS,
    DELETE_EXPIRED_FINGERPRINTS,
)

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


class FingerprintStore(ABC):
    """
    Abstract fingerprint storage.

    At most one fingerprint exists per step_id. Implementations never raise
    storage failures to the caller: they log them and return an empty result.
    """

    @abstractmethod
    async def get(self, step_id: str) -> Optional[SemanticFingerprint]:
        """Return the fingerprint for a step, or None."""
        pass

    @abstractmethod
    async def save(self, fingerprint: SemanticFingerprint) -> bool:
        """Insert a new fingerprint.

        Returns:
            False if nothing was inserted, e.g. the step already has one
        """
        pass

    @abstractmethod
    async def update(self, fingerprint: SemanticFingerprint) -> None:
        """Replace a fingerprint by id."""
        pass

    @abstractmethod
    async def delete(self, step_id: str) -> None:
        pass

    @abstractmethod
    async def get_all(self) -> List[SemanticFingerprint]:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    @abstractmethod
    async def cleanup_expired(self, retention_days: int) -> int:
        """Delete fingerprints not updated within the retention window.

        Returns:
            Number of fingerprints removed
        """
        pass


def _fingerprint_to_row(fingerprint: SemanticFingerprint) -> tuple:
    center_x, center_y = fingerprint.last_known_center
    rect = fingerprint.last_known_rect
    return (
        fingerprint.id,
        fingerprint.step_id,
        fingerprint.semantic_description,
        center_x,
        center_y,
        rect.x,
        rect.y,
        rect.width,
        rect.height,
        fingerprint.created_at,
        fingerprint.updated_at,
        fingerprint.healing_count,
    )


def _row_to_fingerprint(row: Sequence[Any]) -> SemanticFingerprint:
    (fp_id, step_id, description, center_x, center_y,
     rect_x, rect_y, rect_width, rect_height,
     created_at, updated_at, healing_count) = row
    return SemanticFingerprint(
        id=fp_id,
        step_id=step_id,
        semantic_description=description,
        last_known_center=(center_x, center_y),
        last_known_rect=Rect(x=rect_x, y=rect_y, width=rect_width, height=rect_height),
        created_at=created_at,
        updated_at=updated_at,
        healing_count=healing_count,
    )


class SQLiteFingerprintStore(FingerprintStore):
    """Fingerprint store backed by the `fingerprints` table."""

    def __init__(self, database: SQLiteDatabase):
        """
        Args:
            database: Shared healing database
        """
        self.database = database

    async def get(self, step_id: str) -> Optional[SemanticFingerprint]:
        try:
            return await self.database.run("get_fingerprint", self._get_sync, step_id)
        except StorageError as e:
            logger.error(f"Failed to get fingerprint for step {step_id}: {e}")
            return None

    async def save(self, fingerprint: SemanticFingerprint) -> bool:
        try:
            await self.database.run("save_fingerprint", self._save_sync, fingerprint)
            logger.debug(f"Saved fingerprint {fingerprint.id} for step {fingerprint.step_id}")
            return True
        except StorageError as e:
            logger.error(f"Failed to save fingerprint for step {fingerprint.step_id}: {e}")
            return False

    async def update(self, fingerprint: SemanticFingerprint) -> None:
        try:
            updated = await self.database.run("update_fingerprint", self._update_sync, fingerprint)
            if not updated:
                logger.warning(f"Fingerprint {fingerprint.id} not found, nothing updated")
        except StorageError as e:
            logger.error(f"Failed to update fingerprint {fingerprint.id}: {e}")

    async def delete(self, step_id: str) -> None:
        try:
            await self.database.run("delete_fingerprint", self._delete_sync, step_id)
        except StorageError as e:
            logger.error(f"Failed to delete fingerprint for step {step_id}: {e}")

    async def get_all(self) -> List[SemanticFingerprint]:
        try:
            return await self.database.run("get_all_fingerprints", self._get_all_sync)
        except StorageError as e:
            logger.error(f"Failed to get all fingerprints: {e}")
            return []

    async def clear(self) -> None:
        try:
            await self.database.run("clear_fingerprints", self._clear_sync)
        except StorageError as e:
            logger.error(f"Failed to clear fingerprints: {e}")

    async def cleanup_expired(self, retention_days: int) -> int:
        cutoff = now_ms() - retention_days * DAY_MS
        try:
            removed = await self.database.run(
                "cleanup_expired_fingerprints", self._cleanup_sync, cutoff
            )
        except StorageError as e:
            logger.error(f"Failed to cleanup expired fingerprints: {e}")
            return 0

        get_healing_logger("storage").info(
            f"Cleaned up {removed} expired fingerprints (retention {retention_days} days)",
            extra={'operation': 'cleanup_expired', 'metadata': {'removed': removed}}
        )
        return removed

    # Blocking implementations, run in the executor

    def _get_sync(self, step_id: str) -> Optional[SemanticFingerprint]:
        with self.database.connect() as conn:
            row = conn.execute(SELECT_FINGERPRINT_BY_STEP, (step_id,)).fetchone()
        return _row_to_fingerprint(row) if row else None

    def _save_sync(self, fingerprint: SemanticFingerprint) -> None:
        with self.database.transaction() as conn:
            conn.execute(INSERT_FINGERPRINT, _fingerprint_to_row(fingerprint))

    def _update_sync(self, fingerprint: SemanticFingerprint) -> bool:
        fp_id, *values = _fingerprint_to_row(fingerprint)
        with self.database.transaction() as conn:
            cursor = conn.execute(REPLACE_FINGERPRINT, (*values, fp_id))
            return cursor.rowcount > 0

    def _delete_sync(self, step_id: str) -> None:
        with self.database.transaction() as conn:
            conn.execute(DELETE_FINGERPRINT_BY_STEP, (step_id,))

    def _get_all_sync(self) -> List[SemanticFingerprint]:
        with self.database.connect() as conn:
            rows = conn.execute(SELECT_ALL_FINGERPRINTS).fetchall()
        return [_row_to_fingerprint(row) for row in rows]

    def _clear_sync(self) -> None:
        with self.database.transaction() as conn:
            conn.execute(DELETE_ALL_FINGERPRINTS)

    def _cleanup_sync(self, cutoff: int) -> int:
        with self.database.transaction() as conn:
            cursor = conn.execute(DELETE_EXPIRED_FINGERPRINTS, (cutoff,))
            return cursor.rowcount
