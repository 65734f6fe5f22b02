"""
Daily report
Aggregates the stored summaries of one calendar day
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, List

from companion_backend.core.logger import get_logger
from companion_backend.core.protocols import SummaryRepositoryProtocol
from companion_backend.models.activity import CurrentState
from companion_backend.models.analysis import DailyReport

from .productivity_scorer import normalize_percentages

logger = get_logger(__name__)


def build_report(day: date, rows: List[Dict[str, Any]]) -> DailyReport:
    """Aggregate summary rows into a DailyReport"""
    if not rows:
        return DailyReport(day=day)

    count = len(rows)
    work, distraction, neutral = normalize_percentages(
        sum(row["work_score"] for row in rows) / count,
        sum(row["distraction_score"] for row in rows) / count,
        sum(row["neutral_score"] for row in rows) / count,
    )

    states = Counter(row["current_state"] for row in rows)
    dominant_label, _ = max(states.items(), key=lambda item: (item[1], item[0]))

    return DailyReport(
        day=day,
        cycles=count,
        average_focus_score=round(sum(row["focus_score"] for row in rows) / count),
        work_score=work,
        distraction_score=distraction,
        neutral_score=neutral,
        dominant_state=CurrentState.from_label(dominant_label),
        mode_counts=dict(Counter(row["mode"] for row in rows)),
        latest_summary=rows[-1]["summary_text"],
    )


class DailyReportBuilder:
    def __init__(self, summaries: SummaryRepositoryProtocol):
        self.summaries = summaries

    async def build(self, day: date) -> DailyReport:
        rows = await self.summaries.get_by_date(day)
        report = build_report(day, rows)
        logger.debug(f"Daily report for {day}: {report.cycles} summaries")
        return report
