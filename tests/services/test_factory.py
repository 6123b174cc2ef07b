"""Tests for engine construction at the application boundary."""

from unittest.mock import patch

from conftest import FakeLocator
from locator_healing.core.config import Settings
from locator_healing.core.models import SelfHealingConfig
from locator_healing.services.factory import create_healing_engine
from locator_healing.storage import SQLiteFingerprintStore, SQLiteHistoryStore


class TestCreateHealingEngine:
    """Test create_healing_engine wiring."""

    def test_builds_sqlite_stores_from_settings(self, tmp_path):
        """Stores point at the configured database and history cap."""
        db_path = tmp_path / "data" / "healing.db"
        settings = Settings(_env_file=None, HEALING_DB_PATH=str(db_path), MAX_HISTORY_ITEMS=25)

        engine = create_healing_engine(FakeLocator(), settings=settings, config=SelfHealingConfig())

        assert isinstance(engine.fingerprint_store, SQLiteFingerprintStore)
        assert isinstance(engine.history_store, SQLiteHistoryStore)
        assert engine.history_store.max_items == 25
        assert engine.fingerprint_store.database is engine.history_store.database
        assert engine.fingerprint_store.database.db_path == str(db_path)
        assert db_path.parent.exists()

    def test_loads_config_when_omitted(self, tmp_path):
        """Without an explicit config the YAML configuration is used."""
        settings = Settings(_env_file=None, HEALING_DB_PATH=str(tmp_path / "healing.db"))
        loaded = SelfHealingConfig(auto_accept_threshold=70, enable_deep_think=False)

        with patch("locator_healing.services.factory.get_healing_config",
                   return_value=loaded) as get_config:
            engine = create_healing_engine(FakeLocator(), settings=settings)

        get_config.assert_called_once()
        assert engine.get_config() == loaded

    def test_explicit_config_wins(self, tmp_path):
        settings = Settings(_env_file=None, HEALING_DB_PATH=str(tmp_path / "healing.db"))

        with patch("locator_healing.services.factory.get_healing_config") as get_config:
            engine = create_healing_engine(FakeLocator(), settings=settings,
                                           config=SelfHealingConfig(auto_accept_threshold=95))

        get_config.assert_not_called()
        assert engine.get_config().auto_accept_threshold == 95
