"""Unit tests for the SQLite fingerprint store."""

import asyncio
import sqlite3
from unittest.mock import patch

import pytest

from locator_healing.core.models import Rect, now_ms
from locator_healing.storage import SQLiteDatabase, SQLiteFingerprintStore
from locator_healing.storage.fingerprint_store import DAY_MS


class TestFingerprintPersistence:
    """Test basic fingerprint CRUD."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, fingerprint_store, make_fingerprint):
        """A saved fingerprint is returned with all fields intact."""
        fingerprint = make_fingerprint(step_id="click_submit", center=(120.5, 240.0),
                                       rect=Rect(x=70.5, y=215, width=100, height=50))

        await fingerprint_store.save(fingerprint)
        stored = await fingerprint_store.get("click_submit")

        assert stored == fingerprint
        assert stored.last_known_center == (120.5, 240.0)
        assert stored.last_known_rect.width == 100

    @pytest.mark.asyncio
    async def test_get_unknown_step(self, fingerprint_store):
        """Unknown step ids return None."""
        assert await fingerprint_store.get("missing") is None

    @pytest.mark.asyncio
    async def test_update_replaces_by_id(self, fingerprint_store, make_fingerprint):
        """Update rewrites description, geometry and counters."""
        fingerprint = make_fingerprint(step_id="click_submit")
        await fingerprint_store.save(fingerprint)

        fingerprint.semantic_description = "Green Send button"
        fingerprint.last_known_center = (300, 400)
        fingerprint.healing_count = 2
        await fingerprint_store.update(fingerprint)

        stored = await fingerprint_store.get("click_submit")
        assert stored.semantic_description == "Green Send button"
        assert stored.last_known_center == (300, 400)
        assert stored.healing_count == 2
        assert stored.created_at == fingerprint.created_at

    @pytest.mark.asyncio
    async def test_update_missing_is_noop(self, fingerprint_store, make_fingerprint):
        """Updating an unknown fingerprint does not insert it."""
        await fingerprint_store.update(make_fingerprint(step_id="ghost"))

        assert await fingerprint_store.get("ghost") is None

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, fingerprint_store, make_fingerprint):
        """Delete removes one step, clear removes everything."""
        for step_id in ("a", "b", "c"):
            await fingerprint_store.save(make_fingerprint(step_id=step_id))

        await fingerprint_store.delete("a")
        assert {f.step_id for f in await fingerprint_store.get_all()} == {"b", "c"}

        await fingerprint_store.clear()
        assert await fingerprint_store.get_all() == []

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path, make_fingerprint):
        """Fingerprints survive a new store over the same file."""
        db_path = str(tmp_path / "healing.db")
        fingerprint = make_fingerprint(step_id="click_submit")
        await SQLiteFingerprintStore(SQLiteDatabase(db_path)).save(fingerprint)

        reopened = SQLiteFingerprintStore(SQLiteDatabase(db_path))

        assert await reopened.get("click_submit") == fingerprint


class TestStepUniqueness:
    """Test the one-fingerprint-per-step guarantee."""

    @pytest.mark.asyncio
    async def test_duplicate_step_rejected(self, fingerprint_store, make_fingerprint):
        """A second save for the same step is logged, not stored."""
        first = make_fingerprint(step_id="click_submit", description="first")
        second = make_fingerprint(step_id="click_submit", description="second")

        assert await fingerprint_store.save(first) is True
        assert await fingerprint_store.save(second) is False

        all_fingerprints = await fingerprint_store.get_all()
        assert len(all_fingerprints) == 1
        assert all_fingerprints[0].semantic_description == "first"

    @pytest.mark.asyncio
    async def test_concurrent_saves_keep_one_row(self, fingerprint_store, make_fingerprint):
        """Concurrent saves for one step never produce two rows."""
        await asyncio.gather(*[
            fingerprint_store.save(make_fingerprint(step_id="click_submit", description=f"d{i}"))
            for i in range(10)
        ])

        assert len(await fingerprint_store.get_all()) == 1


class TestCleanupExpired:
    """Test retention based cleanup."""

    @pytest.mark.asyncio
    async def test_removes_only_expired(self, fingerprint_store, make_fingerprint):
        """Fingerprints past the retention window are removed and counted."""
        now = now_ms()
        await fingerprint_store.save(make_fingerprint(step_id="old", updated_at=now - 91 * DAY_MS))
        await fingerprint_store.save(make_fingerprint(step_id="fresh", updated_at=now - 89 * DAY_MS))
        await fingerprint_store.save(make_fingerprint(step_id="new", updated_at=now))

        removed = await fingerprint_store.cleanup_expired(90)

        assert removed == 1
        assert {f.step_id for f in await fingerprint_store.get_all()} == {"fresh", "new"}

    @pytest.mark.asyncio
    async def test_nothing_expired(self, fingerprint_store, make_fingerprint):
        """Cleanup with no stale rows reports zero."""
        await fingerprint_store.save(make_fingerprint(step_id="new"))

        assert await fingerprint_store.cleanup_expired(1) == 0


class TestStorageFailures:
    """Storage errors are logged and degrade to empty results."""

    @pytest.mark.asyncio
    async def test_read_failure_degrades(self, fingerprint_store, caplog):
        """Failing reads return None / [] / 0 instead of raising."""
        with patch("locator_healing.storage.database.sqlite3.connect",
                   side_effect=sqlite3.OperationalError("disk I/O error")):
            assert await fingerprint_store.get("click_submit") is None
            assert await fingerprint_store.get_all() == []
            assert await fingerprint_store.cleanup_expired(90) == 0

        assert "disk I/O error" in caplog.text

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, fingerprint_store, make_fingerprint):
        """Failing writes do not raise."""
        with patch("locator_healing.storage.database.sqlite3.connect",
                   side_effect=sqlite3.OperationalError("database is locked")):
            await fingerprint_store.save(make_fingerprint(step_id="click_submit"))
            await fingerprint_store.update(make_fingerprint(step_id="click_submit"))
            await fingerprint_store.delete("click_submit")
            await fingerprint_store.clear()

        assert await fingerprint_store.get("click_submit") is None
