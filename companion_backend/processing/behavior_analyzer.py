"""
Behavior Analyzer - Runs the pattern detectors over a day of activity

Detectors:
- Session boundaries: work sessions split at idle gaps
- Rabbit holes: incoherent browsing chains
- Return-to-task: detours into known distractions and the time to come back
- Fatigue: time since the last break, continuous work, focus decline
- Context: fit between apps in use and the role in the user context
"""

from datetime import datetime
from typing import List, Optional

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event
from companion_backend.models.analysis import AdvancedAnalysis, SessionType

from .context_assessor import ContextAssessor
from .fatigue_analyzer import FatigueAnalyzer
from .rabbit_hole_detector import RabbitHoleDetector
from .return_to_task import ReturnToTaskAnalyzer
from .session_detector import SessionBoundaryDetector

logger = get_logger(__name__)


class BehaviorAnalyzer:
    """
    Composes the pattern detectors into one AdvancedAnalysis

    Each detector is pure over its input; a failing detector is logged and
    its section left at defaults so the rest of the analysis survives.
    """

    def __init__(self, session_gap_seconds: float = 300.0):
        """
        Initialize behavior analyzer

        Args:
            session_gap_seconds: Idle gap that closes a work session (default: 300)
        """
        self.session_detector = SessionBoundaryDetector(gap_seconds=session_gap_seconds)
        self.rabbit_hole_detector = RabbitHoleDetector()
        self.return_analyzer = ReturnToTaskAnalyzer()
        self.fatigue_analyzer = FatigueAnalyzer()
        self.context_assessor = ContextAssessor()

        logger.debug(f"BehaviorAnalyzer initialized (session_gap={session_gap_seconds}s)")

    def analyze(
        self,
        events: List[Event],
        user_context: str = "",
        now: Optional[datetime] = None,
    ) -> AdvancedAnalysis:
        """
        Run every detector

        Args:
            events: Active window events, usually the whole day
            user_context: Free-text description of the user
            now: Reference time for fatigue estimation

        Returns:
            AdvancedAnalysis
        """
        analysis = AdvancedAnalysis()

        try:
            analysis.sessions = self.session_detector.detect(events)
        except Exception as e:
            logger.error(f"Session detection failed: {e}", exc_info=True)

        try:
            analysis.rabbit_hole = self.rabbit_hole_detector.detect(events)
        except Exception as e:
            logger.error(f"Rabbit hole detection failed: {e}", exc_info=True)

        try:
            analysis.return_to_task = self.return_analyzer.analyze(events)
        except Exception as e:
            logger.error(f"Return-to-task analysis failed: {e}", exc_info=True)

        try:
            analysis.fatigue = self.fatigue_analyzer.analyze(analysis.sessions, now=now)
        except Exception as e:
            logger.error(f"Fatigue analysis failed: {e}", exc_info=True)

        try:
            analysis.context = self.context_assessor.assess(events, user_context)
        except Exception as e:
            logger.error(f"Context assessment failed: {e}", exc_info=True)

        return analysis

    @staticmethod
    def format_for_prompt(analysis: AdvancedAnalysis) -> str:
        """Render the analysis as prompt lines"""
        lines: List[str] = []

        sessions = analysis.sessions
        if sessions:
            deep = sum(1 for s in sessions if s.session_type == SessionType.DEEP_WORK)
            breaks = sum(1 for s in sessions if s.session_type == SessionType.BREAK)
            latest = sessions[-1]
            lines.append(
                f"Sessions today: {len(sessions)} ({deep} deep work, {breaks} breaks); "
                f"current session {latest.duration_minutes:.0f}min, "
                f"{latest.session_type.value}, apps: {', '.join(latest.primary_apps) or 'none'}"
            )

        rabbit = analysis.rabbit_hole
        if rabbit.browsing_events:
            path = " → ".join(topic.value for topic in rabbit.drift_path)
            lines.append(
                f"Browsing coherence: {rabbit.coherence_score:.2f} "
                f"(rabbit hole: {'yes' if rabbit.is_rabbit_hole else 'no'}, "
                f"severity: {rabbit.severity.value}, path: {path})"
            )

        returns = analysis.return_to_task
        if returns.distractions:
            lines.append(
                f"Distractions: {returns.true_distractions} true, "
                f"{returns.quick_reference_checks} quick checks, "
                f"average return {returns.average_return_time_seconds:.0f}s"
            )

        if analysis.fatigue:
            fatigue = analysis.fatigue
            lines.append(
                f"Fatigue: {fatigue.fatigue_level.value} "
                f"({fatigue.time_since_break_minutes:.0f}min since break, "
                f"{fatigue.continuous_work_minutes:.0f}min worked, "
                f"break urgency {fatigue.break_urgency.value})"
            )

        if analysis.context:
            context = analysis.context
            lines.append(
                f"Context fit ({context.role}): {context.appropriateness_score:.2f} - "
                f"{context.assessment}"
            )

        return "\n".join(f"• {line}" for line in lines) if lines else "• No patterns detected"
