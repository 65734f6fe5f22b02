"""
Productivity scorer
Deterministic, category-based assessment used on its own when no language
model is available and as the measured baseline otherwise
"""

import math
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import CategoryRecord, CurrentState, Event, TimeframeSnapshot
from companion_backend.models.analysis import ProductivityMetrics

from .default_categories import normalize_app_name

logger = get_logger(__name__)

PRODUCTIVE = "productive"
MODERATE = "moderate"
NEUTRAL = "neutral"
UNPRODUCTIVE = "unproductive"

CATEGORY_BUCKETS = {
    "work": PRODUCTIVE,
    "development": PRODUCTIVE,
    "productivity": MODERATE,
    "communication": NEUTRAL,
    "system": NEUTRAL,
    "entertainment": UNPRODUCTIVE,
}

AFK_MINUTES = 0.5
DISTRACTED_SWITCHES_PER_HOUR = 30.0
MIN_ELAPSED_HOURS = 0.1
MIN_APP_SECONDS = 0.01


def normalize_percentages(
    work: float, distraction: float, neutral: float
) -> Tuple[int, int, int]:
    """Integer percentages that always sum to 100

    Uses largest-remainder rounding. Negative inputs count as zero; an
    all-zero input maps to (0, 0, 100).
    """
    values = [max(0.0, float(value)) for value in (work, distraction, neutral)]
    total = sum(values)
    if total <= 0:
        return 0, 0, 100

    scaled = [value * 100.0 / total for value in values]
    floors = [int(math.floor(value)) for value in scaled]
    remainder = 100 - sum(floors)
    order = sorted(range(3), key=lambda i: (-(scaled[i] - floors[i]), i))
    for index in order[:remainder]:
        floors[index] += 1
    return floors[0], floors[1], floors[2]


def bucket_for(record: Optional[CategoryRecord]) -> str:
    """Productivity bucket; an explicit score wins over the category"""
    if record is not None and record.productivity_score is not None:
        score = record.productivity_score
        if score >= 80:
            return PRODUCTIVE
        if score >= 60:
            return MODERATE
        if score >= 40:
            return NEUTRAL
        return UNPRODUCTIVE

    if record is None:
        return NEUTRAL
    return CATEGORY_BUCKETS.get(record.category, NEUTRAL)


def app_minutes(events: List[Event]) -> Dict[str, float]:
    """Minutes per app, skipping apps with negligible time"""
    totals: Dict[str, float] = defaultdict(float)
    for event in events:
        if event.app:
            totals[event.app] += event.duration_seconds
    return {app: seconds / 60.0 for app, seconds in totals.items() if seconds > MIN_APP_SECONDS}


def focus_score(work_ratio: float, switches_per_hour: float, unique_apps: int) -> int:
    """0-100 focus estimate: work share minus switching and app-sprawl penalties"""
    base = int(work_ratio * 100)
    switch_penalty = int(min(switches_per_hour, 60.0) / 60.0 * 20)
    app_penalty = 10 if unique_apps > 10 else 0
    return max(0, min(100, base - switch_penalty - app_penalty))


class ProductivityScorer:
    """Buckets time by category and derives state, percentages and focus"""

    def score(
        self,
        minutes_by_app: Dict[str, float],
        categories: Dict[str, CategoryRecord],
        context_switches: int,
        elapsed_hours: float,
    ) -> ProductivityMetrics:
        """
        Score a period of activity

        Args:
            minutes_by_app: Active minutes per app
            categories: Category record per app (missing apps count as neutral)
            context_switches: App changes within the period
            elapsed_hours: Length of the period in hours

        Returns:
            ProductivityMetrics
        """
        buckets: Dict[str, float] = {PRODUCTIVE: 0.0, MODERATE: 0.0, NEUTRAL: 0.0, UNPRODUCTIVE: 0.0}
        for app, minutes in minutes_by_app.items():
            record = categories.get(app) or categories.get(normalize_app_name(app))
            buckets[bucket_for(record)] += max(0.0, minutes)

        total = sum(buckets.values())
        work_pct, distraction_pct, neutral_pct = normalize_percentages(
            buckets[PRODUCTIVE] + buckets[MODERATE], buckets[UNPRODUCTIVE], buckets[NEUTRAL]
        )
        switches_per_hour = context_switches / max(elapsed_hours, MIN_ELAPSED_HOURS)

        metrics = ProductivityMetrics(
            productive_minutes=buckets[PRODUCTIVE],
            moderate_minutes=buckets[MODERATE],
            neutral_minutes=buckets[NEUTRAL],
            unproductive_minutes=buckets[UNPRODUCTIVE],
            work_percentage=work_pct,
            distraction_percentage=distraction_pct,
            neutral_percentage=neutral_pct,
            current_state=self._state(buckets, total, switches_per_hour),
            context_switches_per_hour=switches_per_hour,
            unique_apps=len({normalize_app_name(app) for app in minutes_by_app}),
        )
        logger.debug(
            f"Scored {total:.1f}min: state={metrics.current_state.value}, "
            f"work={work_pct}%, distraction={distraction_pct}%, neutral={neutral_pct}%"
        )
        return metrics

    def score_snapshot(
        self, snapshot: TimeframeSnapshot, categories: Dict[str, CategoryRecord]
    ) -> ProductivityMetrics:
        """Score a timeframe using its active minutes as elapsed time"""
        return self.score(
            app_minutes(snapshot.window_events),
            categories,
            snapshot.stats.context_switch_count,
            snapshot.stats.active_minutes / 60.0,
        )

    @staticmethod
    def focus_score(metrics: ProductivityMetrics) -> int:
        total = metrics.total_minutes
        work_ratio = (metrics.productive_minutes + metrics.moderate_minutes) / total if total > 0 else 0.0
        return focus_score(work_ratio, metrics.context_switches_per_hour, metrics.unique_apps)

    @staticmethod
    def _state(buckets: Dict[str, float], total: float, switches_per_hour: float) -> CurrentState:
        if total < AFK_MINUTES:
            return CurrentState.AFK

        work_ratio = (buckets[PRODUCTIVE] + buckets[MODERATE]) / total
        unproductive_ratio = buckets[UNPRODUCTIVE] / total
        distracted = switches_per_hour > DISTRACTED_SWITCHES_PER_HOUR

        if work_ratio > 0.7 and not distracted:
            return CurrentState.PRODUCTIVE
        if work_ratio > 0.5:
            return CurrentState.MODERATE
        if unproductive_ratio > 0.5 or distracted:
            return CurrentState.UNPRODUCTIVE
        return CurrentState.CHILLING
