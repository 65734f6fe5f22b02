"""
Fatigue estimation from work sessions
"""

from datetime import datetime, timezone
from typing import List, NamedTuple, Optional

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import ensure_utc
from companion_backend.models.analysis import (
    BreakUrgency,
    FatigueAnalysis,
    FatigueLevel,
    SessionType,
    WorkSession,
)

logger = get_logger(__name__)

RECENT_SESSIONS = 3


class FatigueVerdict(NamedTuple):
    level: FatigueLevel
    urgency: BreakUrgency
    action: str


def classify_fatigue(
    time_since_break: float, continuous_work: float, degradation: float
) -> FatigueVerdict:
    """Map minutes since break, minutes worked and focus loss to a verdict

    Rules are evaluated in order; the first match wins.
    """
    if time_since_break < 30:
        return FatigueVerdict(
            FatigueLevel.LOW, BreakUrgency.NONE, "Continue working, you're doing well"
        )
    if time_since_break < 60 and continuous_work < 90 and degradation < 0.2:
        return FatigueVerdict(
            FatigueLevel.LOW, BreakUrgency.NONE, "Good work rhythm, keep it up"
        )
    if time_since_break < 90 and continuous_work < 120:
        return FatigueVerdict(
            FatigueLevel.MODERATE, BreakUrgency.SUGGESTED, "Consider a 5-minute break soon"
        )
    if time_since_break < 120 and continuous_work < 180 and degradation < 0.3:
        return FatigueVerdict(
            FatigueLevel.MODERATE,
            BreakUrgency.RECOMMENDED,
            "You've been working hard, take a 10-minute break",
        )
    if time_since_break >= 120:
        return FatigueVerdict(
            FatigueLevel.HIGH,
            BreakUrgency.URGENT,
            "You need a break now - step away for 15 minutes",
        )
    if continuous_work >= 180:
        return FatigueVerdict(
            FatigueLevel.CRITICAL,
            BreakUrgency.URGENT,
            "Extended work detected - take a proper break immediately",
        )
    return FatigueVerdict(
        FatigueLevel.HIGH,
        BreakUrgency.RECOMMENDED,
        "Your focus is declining, time for a refreshing break",
    )


class FatigueAnalyzer:
    """Estimates fatigue from time since the last break and focus trend"""

    def analyze(
        self, sessions: List[WorkSession], now: Optional[datetime] = None
    ) -> FatigueAnalysis:
        now = ensure_utc(now) if now else datetime.now(timezone.utc)

        time_since_break = self.time_since_break(sessions, now)
        continuous_work = sum(
            session.duration_minutes
            for session in sessions
            if session.session_type != SessionType.BREAK
        )
        degradation = self.focus_degradation(sessions)
        verdict = classify_fatigue(time_since_break, continuous_work, degradation)

        return FatigueAnalysis(
            fatigue_level=verdict.level,
            break_urgency=verdict.urgency,
            time_since_break_minutes=time_since_break,
            continuous_work_minutes=continuous_work,
            focus_degradation=degradation,
            recommended_action=verdict.action,
        )

    @staticmethod
    def time_since_break(sessions: List[WorkSession], now: datetime) -> float:
        """Minutes since the end of the latest break, or since the first session"""
        breaks = [session.end for session in sessions if session.session_type == SessionType.BREAK]
        if breaks:
            reference = max(breaks)
        elif sessions:
            reference = sessions[0].start
        else:
            return 0.0
        return max(0.0, (now - ensure_utc(reference)).total_seconds() / 60.0)

    @staticmethod
    def focus_degradation(sessions: List[WorkSession]) -> float:
        """Drop of the recent average focus below the earlier average, never negative"""
        recent = sessions[-RECENT_SESSIONS:]
        if len(recent) < 2:
            return 0.0
        earlier = sessions[:-RECENT_SESSIONS]
        recent_avg = sum(session.focus_score for session in recent) / len(recent)
        earlier_avg = sum(session.focus_score for session in earlier) / max(len(earlier), 1)
        return max(0.0, earlier_avg - recent_avg)
