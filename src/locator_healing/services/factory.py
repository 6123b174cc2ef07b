"""Construction of a fully wired healing engine at the application boundary."""

import logging
from typing import Optional

from ..core.config import Settings
from ..core.config_loader import get_healing_config
from ..core.models import SelfHealingConfig
from ..storage import SQLiteDatabase, SQLiteFingerprintStore, SQLiteHistoryStore
from .healing_engine import HealingEngine
from .locator import ElementLocator

logger = logging.getLogger(__name__)


def create_healing_engine(
    locator: ElementLocator,
    settings: Optional[Settings] = None,
    config: Optional[SelfHealingConfig] = None
) -> HealingEngine:
    """Build a HealingEngine backed by SQLite stores.

    Args:
        locator: Element locator collaborator
        settings: Process settings, read from the environment when omitted
        config: Self-healing configuration, loaded from YAML when omitted

    Returns:
        Configured HealingEngine
    """
    if settings is None:
        from ..core.config import settings as default_settings
        settings = default_settings

    if config is None:
        config = get_healing_config()

    database = SQLiteDatabase(settings.HEALING_DB_PATH)
    engine = HealingEngine(
        fingerprint_store=SQLiteFingerprintStore(database),
        history_store=SQLiteHistoryStore(database, max_items=settings.MAX_HISTORY_ITEMS),
        locator=locator,
        config=config
    )

    logger.info(
        f"Healing engine ready (db={settings.HEALING_DB_PATH}, "
        f"enabled={config.enabled}, threshold={config.auto_accept_threshold})"
    )
    return engine
