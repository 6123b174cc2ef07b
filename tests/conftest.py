"""
Pytest configuration and shared fixtures for the test suite.
"""

import logging
import sys
import uuid
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add the package source to Python path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from locator_healing.core.models import (  # noqa: E402
    LocatedElement,
    Rect,
    SelfHealingConfig,
    SemanticFingerprint,
    now_ms,
)
from locator_healing.services.locator import ElementLocator  # noqa: E402
from locator_healing.storage import (  # noqa: E402
    SQLiteDatabase,
    SQLiteFingerprintStore,
    SQLiteHistoryStore,
)


class FakeLocator(ElementLocator):
    """Locator whose behavior is driven by AsyncMocks."""

    def __init__(self, element=None, description="Blue Submit button"):
        self.locate_mock = AsyncMock(return_value=element)
        self.describe_mock = AsyncMock(return_value=description)

    async def locate(self, description, deep_think=False):
        return await self.locate_mock(description, deep_think=deep_think)

    async def describe(self, center):
        return await self.describe_mock(center)


@pytest.fixture
def database(tmp_path):
    """SQLite healing database in a temporary directory."""
    return SQLiteDatabase(str(tmp_path / "data" / "self_healing.db"))


@pytest.fixture
def fingerprint_store(database):
    return SQLiteFingerprintStore(database)


@pytest.fixture
def history_store(database):
    return SQLiteHistoryStore(database)


@pytest.fixture
def healing_config():
    """Create a test self-healing configuration."""
    return SelfHealingConfig(
        enabled=True,
        enable_deep_think=True,
        auto_accept_threshold=80,
        fingerprint_retention_days=90,
        locate_timeout=2.0
    )


@pytest.fixture
def locator():
    """Locator that finds nothing until a test configures it."""
    return FakeLocator()


@pytest.fixture
def make_fingerprint():
    """Factory for fingerprints with sensible geometry."""
    def _make(step_id=None, description="Blue Submit button", center=(100, 200),
              rect=None, healing_count=0, updated_at=None):
        timestamp = updated_at if updated_at is not None else now_ms()
        return SemanticFingerprint(
            id=str(uuid.uuid4()),
            step_id=step_id or f"step-{uuid.uuid4().hex[:8]}",
            semantic_description=description,
            last_known_center=center,
            last_known_rect=rect or Rect(x=50, y=175, width=100, height=50),
            created_at=timestamp,
            updated_at=timestamp,
            healing_count=healing_count
        )
    return _make


def located(x, y, width=100, height=50):
    """LocatedElement centered at (x, y)."""
    return LocatedElement(
        center=(x, y),
        rect=Rect(x=x - width / 2, y=y - height / 2, width=width, height=height)
    )


@pytest.fixture(autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
