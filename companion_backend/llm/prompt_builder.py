"""
Prompt construction for activity analysis and app categorization
"""

from datetime import datetime
from typing import Iterable, List

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import AppCategory, TimeframeKey
from companion_backend.models.analysis import AnalysisContext, TimelineEntry
from companion_backend.processing.aggregator import top_apps
from companion_backend.processing.behavior_analyzer import BehaviorAnalyzer

from .client import DEFAULT_SYSTEM_PROMPT

logger = get_logger(__name__)

RESPONSE_SCHEMA = """{
  "current_state": "productive|moderate|chilling|unproductive|afk",
  "confidence": "high|medium|low",
  "primary_activity": "short description of the main activity",
  "professional_summary": "2-3 sentence summary addressed to the user",
  "work_score": 0-100,
  "distraction_score": 0-100,
  "neutral_score": 0-100,
  "focus_trend": "maintained|improving|declining|variable",
  "distraction_trend": "low|moderate|high|increasing|decreasing",
  "reasoning": "one sentence explaining the assessment"
}"""

ANALYSIS_REQUIREMENTS = """- Base the assessment on the timeline, not on app names alone
- Compare the short timeframes with the longer ones to judge trends
- Consider the user context when deciding what counts as work
- work_score + distraction_score + neutral_score must equal 100
- Use "afk" only when there is almost no recent activity"""

CATEGORIZABLE = [
    category.value
    for category in AppCategory
    if category != AppCategory.UNCATEGORIZED
]

TIMEFRAME_ORDER = [
    TimeframeKey.FIVE_MINUTES,
    TimeframeKey.TEN_MINUTES,
    TimeframeKey.THIRTY_MINUTES,
    TimeframeKey.ONE_HOUR,
    TimeframeKey.TODAY,
]


def _clock(value: datetime) -> str:
    return value.astimezone().strftime("%H:%M:%S")


class PromptBuilder:
    """Serializes an AnalysisContext into a bounded prompt"""

    def __init__(self, timeline_limit: int = 20, switch_limit: int = 30):
        self.timeline_limit = timeline_limit
        self.switch_limit = switch_limit

    @property
    def system_prompt(self) -> str:
        return DEFAULT_SYSTEM_PROMPT

    def build_analysis_prompt(self, context: AnalysisContext) -> str:
        """
        Build the activity analysis prompt

        Args:
            context: Data gathered for the current cycle

        Returns:
            Prompt text asking for the JSON response schema
        """
        sections = [
            f"USER CONTEXT:\n{context.user_context}",
            f"LOCAL METRICS:\n{self._format_metrics(context)}",
            f"TIMEFRAME COMPARISON:\n{self._format_timeframes(context)}",
            f"TOP APPS TODAY:\n{self._format_top_apps(context)}",
            f"DETAILED ACTIVITY TIMELINE (last {self.timeline_limit} entries):\n"
            f"{self._format_timeline(context.timeline)}",
            f"CONTEXT SWITCHES:\n{self._format_switches(context)}",
            f"BEHAVIOR PATTERNS:\n{BehaviorAnalyzer.format_for_prompt(context.patterns)}",
            f"ANALYSIS REQUIREMENTS:\n{ANALYSIS_REQUIREMENTS}",
            f"Respond with ONLY this JSON object:\n{RESPONSE_SCHEMA}",
        ]
        prompt = "\n\n".join(sections)
        logger.debug(f"Built analysis prompt ({len(prompt)} chars)")
        return prompt

    def build_categorization_prompt(self, app_names: Iterable[str]) -> str:
        """Prompt asking for a JSON mapping of app name to category"""
        apps = "\n".join(f"- {name}" for name in app_names)
        return (
            "Categorize these computer applications by what they are typically used for.\n\n"
            f"APPLICATIONS:\n{apps}\n\n"
            f"Allowed categories: {', '.join(CATEGORIZABLE)}\n"
            "productivity_score is 0-100 (100 = focused work, 0 = pure entertainment).\n\n"
            "Respond with ONLY a JSON object mapping each application name to "
            '{"category": "...", "subcategory": "...", "productivity_score": 0-100}'
        )

    @staticmethod
    def _format_metrics(context: AnalysisContext) -> str:
        metrics = context.metrics
        return "\n".join(
            [
                f"• State (heuristic): {metrics.current_state.value}",
                f"• Work: {metrics.work_percentage}% | Distraction: "
                f"{metrics.distraction_percentage}% | Neutral: {metrics.neutral_percentage}%",
                f"• Focus score: {context.focus_score}/100",
                f"• Context switches per hour: {metrics.context_switches_per_hour:.1f}",
                f"• Active minutes scored: {metrics.total_minutes:.1f}",
            ]
        )

    @staticmethod
    def _format_timeframes(context: AnalysisContext) -> str:
        parts = []
        for key in TIMEFRAME_ORDER:
            snapshot = context.snapshots.get(key)
            if snapshot is None:
                continue
            stats = snapshot.stats
            parts.append(
                f"{key.value}: {stats.active_minutes:.1f}min active, "
                f"{len(stats.unique_apps)} apps, {stats.context_switch_count} switches"
            )
        return " | ".join(parts) if parts else "No timeframe data"

    @staticmethod
    def _format_top_apps(context: AnalysisContext) -> str:
        snapshot = context.snapshots.get(TimeframeKey.TODAY)
        ranked = top_apps(snapshot.window_events) if snapshot else []
        if not ranked:
            return "• None"
        return "\n".join(f"• {app}: {minutes:.1f}min" for app, minutes in ranked)

    def _format_timeline(self, timeline: List[TimelineEntry]) -> str:
        entries = timeline[-self.timeline_limit :]
        if not entries:
            return "• No recent activity"

        lines = []
        for entry in entries:
            if entry.categorized:
                label = entry.category or "other"
                if entry.subcategory:
                    label = f"{label}:{entry.subcategory}"
                score = entry.productivity_score if entry.productivity_score is not None else "?"
                annotation = f"[{label}, score:{score}]"
            else:
                annotation = "[uncategorized]"
            title = f" → {entry.title[:80]}" if entry.title else ""
            lines.append(
                f"• {_clock(entry.timestamp)} - {entry.app} {annotation}{title} "
                f"({entry.duration_minutes:.2f}min)"
            )
        return "\n".join(lines)

    def _format_switches(self, context: AnalysisContext) -> str:
        switches = context.context_switches[-self.switch_limit :]
        if not switches:
            return "• None"
        omitted = len(context.context_switches) - len(switches)
        lines = [
            f"• {switch.from_app} → {switch.to_app} at {_clock(switch.timestamp)}"
            for switch in switches
        ]
        if omitted:
            lines.insert(0, f"• ({omitted} earlier switches omitted)")
        return "\n".join(lines)
