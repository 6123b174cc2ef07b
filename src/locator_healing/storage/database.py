"""SQLite access shared by the fingerprint and history stores."""

import asyncio
import sqlite3
import threading
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

from ..core.errors import StorageError
from .queries import SCHEMA

logger = logging.getLogger(__name__)


class SQLiteDatabase:
    """Connection factory and executor bridge for the healing database."""

    def __init__(self, db_path: str, timeout: float = 5.0):
        """
        Initialize database access.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = str(db_path)
        self.timeout = timeout
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._write_lock = threading.Lock()
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    def initialize_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._schema_lock:
            if self._schema_ready:
                return
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            try:
                for statement in SCHEMA:
                    conn.execute(statement)
                conn.commit()
            finally:
                conn.close()
            self._schema_ready = True

        logger.info(f"Healing database schema initialized at {self.db_path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, roll back on error."""
        if not self._schema_ready:
            self.initialize_schema()

        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialized write transaction."""
        with self._write_lock:
            with self.connect() as conn:
                yield conn

    async def run(self, operation: str, func: Callable[..., Any], *args) -> Any:
        """Run a blocking database call in the default executor.

        Raises:
            StorageError: If the call fails with a sqlite error
        """
        try:
            return await asyncio.get_event_loop().run_in_executor(None, func, *args)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(operation, e) from e
