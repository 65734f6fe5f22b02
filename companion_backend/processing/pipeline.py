"""
Analysis pipeline
One analysis cycle end to end:
- tracking service → active-interval filtering → timeframe snapshots
- category resolution → timeline and context switches
- pattern detectors and local productivity scoring
- LLM evaluation with deterministic fallback
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from companion_backend.core.exceptions import NoActivityDataError
from companion_backend.core.logger import get_logger
from companion_backend.llm.focus_evaluator import FocusEvaluator
from companion_backend.models.activity import (
    CategoryRecord,
    Event,
    TimeframeKey,
    TimeframeSnapshot,
    ensure_utc,
)
from companion_backend.models.analysis import (
    AnalysisContext,
    AnalysisResult,
    ContextSwitch,
    TimelineEntry,
)

from .aggregator import MultiTimeframeAggregator, sort_chronologically
from .behavior_analyzer import BehaviorAnalyzer
from .category_resolver import CategoryResolver
from .productivity_scorer import ProductivityScorer

logger = get_logger(__name__)


def build_timeline(
    events: List[Event], categories: Dict[str, CategoryRecord]
) -> List[TimelineEntry]:
    """Chronological timeline annotated with categories"""
    timeline = []
    for event in sort_chronologically(events):
        if not event.app:
            continue
        record = categories.get(event.app)
        categorized = record is not None and not record.is_uncategorized
        timeline.append(
            TimelineEntry(
                timestamp=event.timestamp,
                app=event.app,
                title=event.title,
                duration_minutes=event.duration_seconds / 60.0,
                category=record.category if categorized else None,
                subcategory=record.subcategory if categorized else None,
                productivity_score=record.productivity_score if record else None,
                categorized=categorized,
            )
        )
    return timeline


def extract_context_switches(timeline: List[TimelineEntry]) -> List[ContextSwitch]:
    """Consecutive timeline entries whose app differs (case-insensitive)"""
    switches = []
    for previous, current in zip(timeline, timeline[1:]):
        if previous.app.lower() != current.app.lower():
            switches.append(
                ContextSwitch(
                    timestamp=current.timestamp,
                    from_app=previous.app,
                    to_app=current.app,
                )
            )
    return switches


class AnalysisOutcome:
    """Result of a cycle plus the context it was derived from"""

    def __init__(self, result: AnalysisResult, context: AnalysisContext):
        self.result = result
        self.context = context


class AnalysisPipeline:
    """Runs one analysis cycle"""

    def __init__(
        self,
        aggregator: MultiTimeframeAggregator,
        resolver: CategoryResolver,
        evaluator: FocusEvaluator,
        scorer: Optional[ProductivityScorer] = None,
        behavior_analyzer: Optional[BehaviorAnalyzer] = None,
        scoring_timeframe: TimeframeKey = TimeframeKey.FIVE_MINUTES,
        timeline_timeframe: TimeframeKey = TimeframeKey.THIRTY_MINUTES,
        pattern_timeframe: TimeframeKey = TimeframeKey.TODAY,
    ):
        """
        Initialize analysis pipeline

        Args:
            aggregator: Multi-timeframe aggregator (owns the tracking client)
            resolver: Category resolver
            evaluator: LLM evaluator with local fallback
            scorer: Productivity scorer
            behavior_analyzer: Pattern detectors
            scoring_timeframe: Timeframe the local metrics are computed over
            timeline_timeframe: Timeframe the prompt timeline is taken from
            pattern_timeframe: Timeframe the pattern detectors run over
        """
        self.aggregator = aggregator
        self.resolver = resolver
        self.evaluator = evaluator
        self.scorer = scorer or ProductivityScorer()
        self.behavior_analyzer = behavior_analyzer or BehaviorAnalyzer()
        self.scoring_timeframe = scoring_timeframe
        self.timeline_timeframe = timeline_timeframe
        self.pattern_timeframe = pattern_timeframe

        self.stats: Dict[str, Any] = {
            "cycles": 0,
            "llm_results": 0,
            "local_results": 0,
            "last_run": None,
        }

    async def run(self, user_context: str, now: Optional[datetime] = None) -> AnalysisOutcome:
        """
        Run one cycle

        Args:
            user_context: Free-text description of the user and their goal
            now: Reference time

        Returns:
            AnalysisOutcome

        Raises:
            TrackingServiceError: If the tracking service cannot be reached
            BucketNotFoundError: If a required bucket is missing
            NoActivityDataError: If no window activity was recorded today
        """
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        snapshots = await self.aggregator.collect(now)

        widest = snapshots[TimeframeKey.TODAY]
        if not widest.window_events:
            raise NoActivityDataError("No window activity recorded in any timeframe")

        app_names = sorted({event.app for event in widest.window_events if event.app})
        categories = await self.resolver.resolve_many(app_names)

        context = self.build_context(snapshots, categories, user_context, now)
        result = await self.evaluator.evaluate(context)

        self.stats["cycles"] += 1
        self.stats["llm_results" if result.source == "llm" else "local_results"] += 1
        self.stats["last_run"] = now

        logger.debug(
            f"Analysis cycle done: state={result.state.value}, source={result.source}, "
            f"apps={len(app_names)}"
        )
        return AnalysisOutcome(result, context)

    def build_context(
        self,
        snapshots: Dict[TimeframeKey, TimeframeSnapshot],
        categories: Dict[str, CategoryRecord],
        user_context: str,
        now: datetime,
    ) -> AnalysisContext:
        timeline = build_timeline(snapshots[self.timeline_timeframe].window_events, categories)
        switches = extract_context_switches(timeline)

        metrics = self.scorer.score_snapshot(snapshots[self.scoring_timeframe], categories)
        patterns = self.behavior_analyzer.analyze(
            snapshots[self.pattern_timeframe].window_events, user_context, now=now
        )

        return AnalysisContext(
            user_context=user_context,
            snapshots=snapshots,
            timeline=timeline,
            context_switches=switches,
            metrics=metrics,
            focus_score=self.scorer.focus_score(metrics),
            patterns=patterns,
            generated_at=now,
        )
