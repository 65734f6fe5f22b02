"""
Session boundary detection
Splits a day of activity into work sessions at idle gaps
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event
from companion_backend.models.analysis import SessionType, WorkSession

logger = get_logger(__name__)


def focus_from_app_count(app_count: int) -> float:
    if app_count <= 1:
        return 1.0
    if app_count <= 3:
        return 0.8
    if app_count <= 5:
        return 0.6
    return 0.4


def classify_session(duration_minutes: float, focus_score: float) -> SessionType:
    if duration_minutes > 45 and focus_score > 0.7:
        return SessionType.DEEP_WORK
    if duration_minutes < 15:
        return SessionType.BREAK
    if focus_score > 0.5:
        return SessionType.SHALLOW_WORK
    return SessionType.MIXED


class SessionBoundaryDetector:
    """Groups events into sessions separated by gaps longer than gap_seconds"""

    def __init__(self, gap_seconds: float = 300.0):
        self.gap_seconds = gap_seconds

    def detect(self, events: List[Event]) -> List[WorkSession]:
        """
        Detect work sessions

        Args:
            events: Active window events (any order)

        Returns:
            Sessions in chronological order
        """
        ordered = sorted(events, key=lambda event: event.timestamp)
        if not ordered:
            return []

        sessions: List[WorkSession] = []
        current: List[Event] = [ordered[0]]
        current_end = ordered[0].end

        for event in ordered[1:]:
            gap = (event.timestamp - current_end).total_seconds()
            if gap > self.gap_seconds:
                sessions.append(self._build_session(current, current_end))
                current = [event]
                current_end = event.end
            else:
                current.append(event)
                current_end = max(current_end, event.end)

        sessions.append(self._build_session(current, current_end))

        logger.debug(f"Detected {len(sessions)} sessions from {len(ordered)} events")
        return sessions

    @staticmethod
    def _build_session(events: List[Event], end: datetime) -> WorkSession:
        start = events[0].timestamp
        duration_minutes = (end - start).total_seconds() / 60.0

        app_time: Dict[str, float] = defaultdict(float)
        for event in events:
            app_time[event.app.lower() or "unknown"] += event.duration_seconds

        primary_apps = [
            app
            for app, _ in sorted(app_time.items(), key=lambda item: (-item[1], item[0]))[:3]
        ]
        focus_score = focus_from_app_count(len(app_time))

        return WorkSession(
            start=start,
            end=end,
            duration_minutes=duration_minutes,
            primary_apps=primary_apps,
            focus_score=focus_score,
            session_type=classify_session(duration_minutes, focus_score),
        )
