"""
Settings Repository - Key/value settings persisted across restarts
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from companion_backend.core.logger import get_logger
from companion_backend.core.sqls import queries

from .base import BaseRepository

logger = get_logger(__name__)


class SettingsRepository(BaseRepository):
    """Repository for typed key/value settings"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def set(
        self,
        key: str,
        value: str,
        setting_type: str = "string",
        description: Optional[str] = None,
    ) -> int:
        """Set a setting value"""
        try:
            with self._get_conn() as conn:
                cursor = conn.execute(
                    queries.UPSERT_SETTING, (key, value, setting_type, description)
                )
                conn.commit()
                return cursor.rowcount
        except Exception as e:
            logger.error(f"Failed to save setting {key}: {e}", exc_info=True)
            raise

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a raw setting value"""
        try:
            with self._get_conn() as conn:
                row = conn.execute(queries.SELECT_SETTING, (key,)).fetchone()
                return row["value"] if row else default
        except Exception as e:
            logger.error(f"Failed to load setting {key}: {e}", exc_info=True)
            raise

    def get_all(self) -> Dict[str, Any]:
        """Get all settings with type conversion"""
        try:
            with self._get_conn() as conn:
                rows = conn.execute(queries.SELECT_ALL_SETTINGS).fetchall()
        except Exception as e:
            logger.error(f"Failed to load settings: {e}", exc_info=True)
            raise

        result: Dict[str, Any] = {}
        for row in rows:
            result[row["key"]] = self._convert(row["value"], row["type"])
        return result

    def delete(self, key: str) -> int:
        try:
            with self._get_conn() as conn:
                cursor = conn.execute(queries.DELETE_SETTING, (key,))
                conn.commit()
                return cursor.rowcount
        except Exception as e:
            logger.error(f"Failed to delete setting {key}: {e}", exc_info=True)
            raise

    @staticmethod
    def _convert(value: str, setting_type: str) -> Any:
        try:
            if setting_type == "bool":
                return value.lower() in ("true", "1", "yes")
            if setting_type == "int":
                return int(value)
            if setting_type == "float":
                return float(value)
            if setting_type == "json":
                return json.loads(value)
        except (ValueError, json.JSONDecodeError):
            logger.warning(f"Could not convert setting value {value!r} as {setting_type}")
        return value
