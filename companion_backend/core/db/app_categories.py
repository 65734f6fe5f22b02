"""
AppCategories Repository - Handles persisted application categories
Rows carry an origin of 'auto' (batch categorization) or 'user' (manual edit)
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from companion_backend.core.logger import get_logger
from companion_backend.core.sqls import queries

from .base import BaseRepository

logger = get_logger(__name__)


class AppCategoriesRepository(BaseRepository):
    """Repository for application categories"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    async def upsert(
        self,
        app_name: str,
        category: str,
        subcategory: Optional[str],
        productivity_score: Optional[int],
        origin: str,
    ) -> bool:
        """
        Insert or update a category row

        Automatic writes never replace a row whose origin is 'user'.

        Args:
            app_name: Normalized application name
            category: Category name
            subcategory: Optional subcategory
            productivity_score: 0-100 score, or None
            origin: 'auto' or 'user'

        Returns:
            True if a row was written, False if a user row blocked the write
        """
        if origin not in ("auto", "user"):
            raise ValueError(f"Only auto and user categories are persisted, got {origin}")

        now = datetime.now().isoformat()
        try:
            with self._get_conn() as conn:
                cursor = conn.execute(
                    queries.UPSERT_APP_CATEGORY,
                    (app_name, category, subcategory, productivity_score, origin, now, now),
                )
                conn.commit()
                written = cursor.rowcount > 0
                if written:
                    logger.debug(f"Saved category for {app_name}: {category} ({origin})")
                else:
                    logger.debug(f"Kept user category for {app_name}, skipped {origin} write")
                return written
        except Exception as e:
            logger.error(f"Failed to save category for {app_name}: {e}", exc_info=True)
            raise

    async def get(self, app_name: str) -> Optional[Dict[str, Any]]:
        """Get the category row of one app"""
        try:
            with self._get_conn() as conn:
                row = conn.execute(queries.SELECT_APP_CATEGORY, (app_name,)).fetchone()
                return self._row_to_dict(row) if row else None
        except Exception as e:
            logger.error(f"Failed to load category for {app_name}: {e}", exc_info=True)
            raise

    async def get_all(self) -> List[Dict[str, Any]]:
        """Get every persisted category row"""
        try:
            with self._get_conn() as conn:
                rows = conn.execute(queries.SELECT_ALL_APP_CATEGORIES).fetchall()
                return [self._row_to_dict(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to load app categories: {e}", exc_info=True)
            raise

    async def delete(self, app_name: str) -> bool:
        try:
            with self._get_conn() as conn:
                cursor = conn.execute(queries.DELETE_APP_CATEGORY, (app_name,))
                conn.commit()
                return cursor.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to delete category for {app_name}: {e}", exc_info=True)
            raise
