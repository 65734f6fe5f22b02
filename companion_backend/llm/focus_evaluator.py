"""
LLM-assisted focus evaluation

Asks the generation backend for an assessment of the gathered activity
context and merges it with the deterministic local metrics. When the backend
is unavailable the local metrics alone produce the result.
"""

from typing import List, Optional

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.logger import get_logger
from companion_backend.models.activity import CurrentState, TimeframeKey
from companion_backend.models.analysis import (
    DEFAULT_PRIMARY_ACTIVITY,
    DEFAULT_PROFESSIONAL_SUMMARY,
    AnalysisContext,
    AnalysisResult,
    Confidence,
    DistractionTrend,
    FatigueLevel,
    FocusTrend,
    LLMAnalysis,
)
from companion_backend.processing.aggregator import top_apps
from companion_backend.processing.productivity_scorer import normalize_percentages

from .manager import LLMManager, get_llm_manager
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser, coerce_enum

logger = get_logger(__name__)


def _switch_rate(context: AnalysisContext, key: TimeframeKey) -> Optional[float]:
    snapshot = context.snapshots.get(key)
    if snapshot is None or snapshot.stats.active_minutes < 1.0:
        return None
    return snapshot.stats.context_switch_count / snapshot.stats.active_minutes


def local_focus_trend(context: AnalysisContext) -> FocusTrend:
    """Compare the recent switching rate with the hourly one"""
    recent = _switch_rate(context, TimeframeKey.FIVE_MINUTES)
    hourly = _switch_rate(context, TimeframeKey.ONE_HOUR)
    if recent is None or hourly is None:
        return FocusTrend.VARIABLE
    if hourly == 0:
        return FocusTrend.MAINTAINED if recent == 0 else FocusTrend.DECLINING
    ratio = recent / hourly
    if ratio < 0.75:
        return FocusTrend.IMPROVING
    if ratio > 1.25:
        return FocusTrend.DECLINING
    return FocusTrend.MAINTAINED


def local_distraction_trend(distraction_percentage: int) -> DistractionTrend:
    if distraction_percentage < 20:
        return DistractionTrend.LOW
    if distraction_percentage < 50:
        return DistractionTrend.MODERATE
    return DistractionTrend.HIGH


def _recent_top_apps(context: AnalysisContext, limit: int = 3) -> List[str]:
    for key in (TimeframeKey.THIRTY_MINUTES, TimeframeKey.ONE_HOUR, TimeframeKey.TODAY):
        snapshot = context.snapshots.get(key)
        if snapshot and snapshot.window_events:
            return [app for app, _ in top_apps(snapshot.window_events, limit)]
    return []


def compose_summary(context: AnalysisContext) -> str:
    """Deterministic summary text built from local data only"""
    metrics = context.metrics
    apps = _recent_top_apps(context)

    if not apps:
        return "No recent activity detected. Time for a break or just getting started?"
    if metrics.current_state == CurrentState.AFK:
        return f"You appear to be away from the computer. Earlier activity included {', '.join(apps)}."

    parts = [
        f"You've spent most time in {apps[0]} with a {metrics.work_percentage}% productivity rate.",
        f"Recent activity includes {', '.join(apps)} with "
        f"{len(context.context_switches)} total context switches.",
    ]

    rabbit = context.patterns.rabbit_hole
    if rabbit.is_rabbit_hole:
        parts.append(
            f"Your browsing has drifted across topics ({rabbit.severity.value} rabbit hole)."
        )

    fatigue = context.patterns.fatigue
    if fatigue and fatigue.fatigue_level in (FatigueLevel.HIGH, FatigueLevel.CRITICAL):
        parts.append(f"{fatigue.recommended_action}.")

    return " ".join(parts)


def primary_activity_for(context: AnalysisContext) -> str:
    apps = _recent_top_apps(context, limit=1)
    return f"Working in {apps[0]}" if apps else DEFAULT_PRIMARY_ACTIVITY


class FocusEvaluator:
    """Produces the AnalysisResult of a cycle"""

    def __init__(
        self,
        llm_manager: Optional[LLMManager] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        response_parser: Optional[ResponseParser] = None,
    ):
        self.llm_manager = llm_manager or get_llm_manager()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.response_parser = response_parser or ResponseParser()

    async def evaluate(self, context: AnalysisContext) -> AnalysisResult:
        """
        Evaluate the cycle's activity

        Args:
            context: Gathered activity, metrics and patterns

        Returns:
            AnalysisResult; source is 'llm' when the backend answered, 'local' otherwise
        """
        try:
            prompt = self.prompt_builder.build_analysis_prompt(context)
            text = await self.llm_manager.generate(
                prompt, system=self.prompt_builder.system_prompt
            )
        except LLMUnavailableError as e:
            logger.warning(f"LLM unavailable, using local analysis: {e}")
            return self.local_result(context)

        analysis = self.response_parser.parse(text)
        result = self.merge(analysis, context)
        logger.info(
            f"LLM evaluation completed: state={result.state.value}, "
            f"confidence={result.confidence.value}, parse={analysis.parse_method}"
        )
        return result

    def merge(self, analysis: LLMAnalysis, context: AnalysisContext) -> AnalysisResult:
        """
        Combine parsed model output with local metrics

        The model's state and score split are used only at high confidence;
        otherwise the measured values stand.
        """
        metrics = context.metrics
        confidence = coerce_enum(Confidence, analysis.confidence, Confidence.MEDIUM)
        trusted = confidence == Confidence.HIGH

        if trusted:
            state = CurrentState.from_label(analysis.current_state, default=metrics.current_state)
            work, distraction, neutral = normalize_percentages(
                analysis.work_score, analysis.distraction_score, analysis.neutral_score
            )
        else:
            state = metrics.current_state
            work, distraction, neutral = (
                metrics.work_percentage,
                metrics.distraction_percentage,
                metrics.neutral_percentage,
            )

        summary = analysis.professional_summary.strip()
        if not summary or summary == DEFAULT_PROFESSIONAL_SUMMARY:
            summary = compose_summary(context)

        primary_activity = analysis.primary_activity.strip()
        if not primary_activity or primary_activity == DEFAULT_PRIMARY_ACTIVITY:
            primary_activity = primary_activity_for(context)

        return AnalysisResult(
            state=state,
            focus_trend=coerce_enum(FocusTrend, analysis.focus_trend, FocusTrend.VARIABLE),
            distraction_trend=coerce_enum(
                DistractionTrend, analysis.distraction_trend, DistractionTrend.MODERATE
            ),
            confidence=confidence,
            summary_text=summary,
            work_score=work,
            distraction_score=distraction,
            neutral_score=neutral,
            focus_score=context.focus_score,
            primary_activity=primary_activity,
            reasoning=analysis.reasoning,
            source="llm",
        )

    def local_result(self, context: AnalysisContext) -> AnalysisResult:
        """Result from local metrics only"""
        metrics = context.metrics
        return AnalysisResult(
            state=metrics.current_state,
            focus_trend=local_focus_trend(context),
            distraction_trend=local_distraction_trend(metrics.distraction_percentage),
            confidence=Confidence.LOW,
            summary_text=compose_summary(context),
            work_score=metrics.work_percentage,
            distraction_score=metrics.distraction_percentage,
            neutral_score=metrics.neutral_percentage,
            focus_score=context.focus_score,
            primary_activity=primary_activity_for(context),
            reasoning="Generated from local activity metrics",
            source="local",
        )
