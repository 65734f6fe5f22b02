"""
Return-to-task analysis
Finds detours from the main apps into known distractions and times the way back
"""

from collections import defaultdict
from typing import Dict, List, Optional

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event
from companion_backend.models.analysis import (
    DistractionClassification,
    DistractionEvent,
    ReturnToTaskMetrics,
)

logger = get_logger(__name__)

DISTRACTION_MARKERS = (
    "youtube",
    "reddit",
    "twitter",
    "facebook",
    "instagram",
    "tiktok",
    "discord",
    "slack",
    "whatsapp",
)

QUICK_CHECK_SECONDS = 30.0
PRIMARY_APP_COUNT = 3


def is_potential_distraction(app_name: str) -> bool:
    app = app_name.lower()
    return any(marker in app for marker in DISTRACTION_MARKERS)


def primary_apps(events: List[Event], count: int = PRIMARY_APP_COUNT) -> List[str]:
    """Apps with the most accumulated time, lower-cased"""
    totals: Dict[str, float] = defaultdict(float)
    for event in events:
        if event.app:
            totals[event.app.lower()] += event.duration_seconds
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [app for app, _ in ranked[:count]]


class ReturnToTaskAnalyzer:
    """Classifies departures from primary apps into distractions"""

    def analyze(self, events: List[Event]) -> ReturnToTaskMetrics:
        ordered = sorted(events, key=lambda event: event.timestamp)
        primary = set(primary_apps(ordered))
        distractions: List[DistractionEvent] = []

        for index in range(1, len(ordered)):
            previous = ordered[index - 1]
            current = ordered[index]
            if previous.app.lower() not in primary:
                continue
            if current.app.lower() in primary or not is_potential_distraction(current.app):
                continue

            return_time = self._return_time(ordered, index, primary)
            distractions.append(
                DistractionEvent(
                    timestamp=current.timestamp,
                    from_app=previous.app,
                    distraction_app=current.app,
                    duration_seconds=current.duration_seconds,
                    return_time_seconds=return_time,
                    classification=self._classify(current.duration_seconds, return_time),
                )
            )

        return_times = [
            distraction.return_time_seconds
            for distraction in distractions
            if distraction.return_time_seconds is not None
        ]
        metrics = ReturnToTaskMetrics(
            primary_apps=sorted(primary),
            distractions=distractions,
            average_return_time_seconds=(
                sum(return_times) / len(return_times) if return_times else 0.0
            ),
            quick_reference_checks=sum(
                1
                for distraction in distractions
                if distraction.classification == DistractionClassification.QUICK_CHECK
            ),
            true_distractions=sum(
                1
                for distraction in distractions
                if distraction.classification == DistractionClassification.DISTRACTION
            ),
        )
        logger.debug(
            f"Return-to-task: {len(distractions)} departures, "
            f"{metrics.true_distractions} distractions"
        )
        return metrics

    @staticmethod
    def _return_time(ordered: List[Event], start_index: int, primary: set) -> Optional[float]:
        departure = ordered[start_index]
        for event in ordered[start_index + 1 :]:
            if event.app.lower() in primary:
                return (event.timestamp - departure.timestamp).total_seconds()
        return None

    @staticmethod
    def _classify(duration_seconds: float, return_time: Optional[float]) -> DistractionClassification:
        if duration_seconds < QUICK_CHECK_SECONDS:
            return DistractionClassification.QUICK_CHECK
        if return_time is not None:
            return DistractionClassification.DISTRACTION
        return DistractionClassification.TASK_SWITCH
