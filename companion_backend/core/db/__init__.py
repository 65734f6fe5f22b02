"""
Database module - Repository pattern implementation

This module provides:
1. Individual Repository classes (app categories, summaries, settings)
2. Unified DatabaseManager that aggregates all repositories
3. Global get_db() and switch_database() functions for easy access
"""

import sqlite3
from pathlib import Path
from typing import Optional

from companion_backend.core.logger import get_logger
from companion_backend.core.sqls import schema

from .app_categories import AppCategoriesRepository
from .base import BaseRepository
from .settings import SettingsRepository
from .summaries import SummariesRepository

logger = get_logger(__name__)


class DatabaseManager:
    """
    Unified database manager that provides access to all repositories

    Example:
        db = get_db()
        rows = await db.app_categories.get_all()
        mode = db.settings.get("app.current_mode")
    """

    def __init__(self, db_path: Path):
        """
        Initialize DatabaseManager with all repositories

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialize_database()

        self.app_categories = AppCategoriesRepository(self.db_path)
        self.summaries = SummariesRepository(self.db_path)
        self.settings = SettingsRepository(self.db_path)

        logger.debug(f"✓ DatabaseManager initialized with path: {self.db_path}")

    def _initialize_database(self) -> None:
        """Create tables and indexes if they don't exist"""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            try:
                for statement in schema.ALL_TABLES + schema.ALL_INDEXES:
                    conn.execute(statement)
                conn.commit()
            finally:
                conn.close()
            logger.debug("✓ Database schema up to date")
        except Exception as e:
            logger.error(f"Failed to initialize database schema: {e}", exc_info=True)
            raise


_db_instance: Optional[DatabaseManager] = None


def _default_db_path() -> Path:
    from companion_backend.config.loader import get_config

    configured = get_config().get("database.path")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".config" / "companion-cube" / "companion.db"


def get_db() -> DatabaseManager:
    """Get global DatabaseManager instance"""
    global _db_instance
    if _db_instance is None:
        _db_instance = DatabaseManager(_default_db_path())
    return _db_instance


def switch_database(db_path: Path) -> DatabaseManager:
    """Point the global DatabaseManager at another file"""
    global _db_instance
    _db_instance = DatabaseManager(db_path)
    logger.info(f"Switched database to: {db_path}")
    return _db_instance


__all__ = [
    "AppCategoriesRepository",
    "BaseRepository",
    "DatabaseManager",
    "SettingsRepository",
    "SummariesRepository",
    "get_db",
    "switch_database",
]
