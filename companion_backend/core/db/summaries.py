"""
Summaries Repository - Append-only history of produced summaries
Backs the daily report and the summary history view
"""

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

from companion_backend.core.logger import get_logger
from companion_backend.core.sqls import queries

from .base import BaseRepository

logger = get_logger(__name__)


class SummariesRepository(BaseRepository):
    """Repository for the summary history"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    async def append(self, record: Dict[str, Any]) -> int:
        """
        Append a flattened summary row

        Args:
            record: Row as produced by SummaryRecord.to_flat_dict()

        Returns:
            Row id
        """
        try:
            with self._get_conn() as conn:
                cursor = conn.execute(
                    queries.INSERT_SUMMARY,
                    (
                        record["created_at"],
                        record["mode"],
                        record["period"],
                        record["current_state"],
                        record["summary_text"],
                        int(record["focus_score"]),
                        int(record["work_score"]),
                        int(record["distraction_score"]),
                        int(record["neutral_score"]),
                        record.get("last_updated"),
                    ),
                )
                conn.commit()
                row_id = cursor.lastrowid or 0
                logger.debug(f"Appended {record['mode']} summary #{row_id}")
                return row_id
        except Exception as e:
            logger.error(f"Failed to append summary: {e}", exc_info=True)
            raise

    async def get_recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        try:
            with self._get_conn() as conn:
                rows = conn.execute(queries.SELECT_RECENT_SUMMARIES, (limit,)).fetchall()
                return [self._row_to_dict(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to load recent summaries: {e}", exc_info=True)
            raise

    async def get_by_date(self, day: date) -> List[Dict[str, Any]]:
        """Get the summaries created on a local calendar day, oldest first"""
        start = datetime.combine(day, datetime.min.time())
        end = start + timedelta(days=1)
        try:
            with self._get_conn() as conn:
                rows = conn.execute(
                    queries.SELECT_SUMMARIES_BETWEEN,
                    (start.isoformat(), end.isoformat()),
                ).fetchall()
                return [self._row_to_dict(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to load summaries for {day}: {e}", exc_info=True)
            raise
