"""
Analysis models
Detector outputs, local productivity metrics, parsed LLM output and the
final result/summary records
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from .activity import CurrentState, Mode, TimeframeKey, TimeframeSnapshot


class SessionType(str, Enum):
    DEEP_WORK = "deep_work"
    SHALLOW_WORK = "shallow_work"
    MIXED = "mixed"
    BREAK = "break"


class WorkSession(BaseModel):
    start: datetime
    end: datetime
    duration_minutes: float
    primary_apps: List[str] = Field(default_factory=list, max_length=3)
    focus_score: float = Field(ge=0.0, le=1.0)
    session_type: SessionType


class DistractionClassification(str, Enum):
    QUICK_CHECK = "quick_check"
    DISTRACTION = "distraction"
    TASK_SWITCH = "task_switch"


class DistractionEvent(BaseModel):
    timestamp: datetime
    from_app: str
    distraction_app: str
    duration_seconds: float
    return_time_seconds: Optional[float] = None
    classification: DistractionClassification


class ReturnToTaskMetrics(BaseModel):
    primary_apps: List[str] = Field(default_factory=list)
    distractions: List[DistractionEvent] = Field(default_factory=list)
    average_return_time_seconds: float = 0.0
    quick_reference_checks: int = 0
    true_distractions: int = 0


class TopicLabel(str, Enum):
    PROGRAMMING = "programming"
    REFERENCE = "reference"
    SOCIAL_MEDIA = "social_media"
    NEWS = "news"
    EMAIL = "email"
    DOCUMENTATION = "documentation"
    OTHER = "other"


class RabbitHoleSeverity(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class RabbitHoleAnalysis(BaseModel):
    is_rabbit_hole: bool = False
    coherence_score: float = 1.0
    severity: RabbitHoleSeverity = RabbitHoleSeverity.NONE
    browsing_events: int = 0
    initial_topic: Optional[TopicLabel] = None
    current_topic: Optional[TopicLabel] = None
    drift_path: List[TopicLabel] = Field(default_factory=list)


class FatigueLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class BreakUrgency(str, Enum):
    NONE = "none"
    SUGGESTED = "suggested"
    RECOMMENDED = "recommended"
    URGENT = "urgent"


class FatigueAnalysis(BaseModel):
    fatigue_level: FatigueLevel
    break_urgency: BreakUrgency
    time_since_break_minutes: float
    continuous_work_minutes: float
    focus_degradation: float
    recommended_action: str


class ContextAssessment(BaseModel):
    role: str
    appropriateness_score: float = Field(ge=0.0, le=1.0)
    assessment: str
    expected_minutes: float = 0.0
    neutral_minutes: float = 0.0
    distraction_minutes: float = 0.0


class AdvancedAnalysis(BaseModel):
    """Outputs of all pattern detectors for one cycle"""

    sessions: List[WorkSession] = Field(default_factory=list)
    rabbit_hole: RabbitHoleAnalysis = Field(default_factory=RabbitHoleAnalysis)
    return_to_task: ReturnToTaskMetrics = Field(default_factory=ReturnToTaskMetrics)
    fatigue: Optional[FatigueAnalysis] = None
    context: Optional[ContextAssessment] = None


class ProductivityMetrics(BaseModel):
    productive_minutes: float = 0.0
    moderate_minutes: float = 0.0
    neutral_minutes: float = 0.0
    unproductive_minutes: float = 0.0
    work_percentage: int = 0
    distraction_percentage: int = 0
    neutral_percentage: int = 100
    current_state: CurrentState = CurrentState.AFK
    context_switches_per_hour: float = 0.0
    unique_apps: int = 0

    @property
    def total_minutes(self) -> float:
        return (
            self.productive_minutes
            + self.moderate_minutes
            + self.neutral_minutes
            + self.unproductive_minutes
        )


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FocusTrend(str, Enum):
    MAINTAINED = "maintained"
    IMPROVING = "improving"
    DECLINING = "declining"
    VARIABLE = "variable"


class DistractionTrend(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    INCREASING = "increasing"
    DECREASING = "decreasing"


DEFAULT_PRIMARY_ACTIVITY = "Unable to determine primary activity"
DEFAULT_PROFESSIONAL_SUMMARY = (
    "Activity summary is being generated. Please wait for detailed analysis."
)
DEFAULT_REASONING = "Analysis incomplete due to parsing error"

_SCORE_DEFAULTS = {"work_score": 50, "distraction_score": 30, "neutral_score": 20}


class LLMAnalysis(BaseModel):
    """Backend output after parsing, before normalization"""

    current_state: str
    focus_trend: str
    distraction_trend: str
    confidence: str
    primary_activity: str
    professional_summary: str = DEFAULT_PROFESSIONAL_SUMMARY
    work_score: int = 50
    distraction_score: int = 30
    neutral_score: int = 20
    reasoning: str
    parse_method: str = "direct"

    @field_validator("work_score", "distraction_score", "neutral_score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any, info: ValidationInfo) -> int:
        try:
            score = int(round(float(str(value).strip().rstrip("%"))))
        except (TypeError, ValueError):
            return _SCORE_DEFAULTS[info.field_name]
        return max(0, min(100, score))

    @field_validator(
        "current_state",
        "focus_trend",
        "distraction_trend",
        "confidence",
        "primary_activity",
        "reasoning",
        "professional_summary",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class AnalysisResult(BaseModel):
    """Final assessment of one cycle"""

    state: CurrentState
    focus_trend: FocusTrend = FocusTrend.VARIABLE
    distraction_trend: DistractionTrend = DistractionTrend.MODERATE
    confidence: Confidence = Confidence.MEDIUM
    summary_text: str
    work_score: int = Field(ge=0, le=100)
    distraction_score: int = Field(ge=0, le=100)
    neutral_score: int = Field(ge=0, le=100)
    focus_score: int = Field(default=0, ge=0, le=100)
    primary_activity: str = DEFAULT_PRIMARY_ACTIVITY
    reasoning: str = ""
    source: str = "local"

    @model_validator(mode="after")
    def _scores_sum_to_100(self) -> "AnalysisResult":
        total = self.work_score + self.distraction_score + self.neutral_score
        if total != 100:
            raise ValueError(f"work, distraction and neutral scores must sum to 100, got {total}")
        return self


class TimelineEntry(BaseModel):
    """One event of the recent timeline with its category annotation"""

    timestamp: datetime
    app: str
    title: str = ""
    duration_minutes: float
    category: Optional[str] = None
    subcategory: Optional[str] = None
    productivity_score: Optional[int] = None
    categorized: bool = False


class ContextSwitch(BaseModel):
    timestamp: datetime
    from_app: str
    to_app: str


class AnalysisContext(BaseModel):
    """Everything gathered for one cycle before the model is consulted"""

    user_context: str
    snapshots: Dict[TimeframeKey, TimeframeSnapshot]
    timeline: List[TimelineEntry] = Field(default_factory=list)
    context_switches: List[ContextSwitch] = Field(default_factory=list)
    metrics: ProductivityMetrics
    focus_score: int = Field(ge=0, le=100)
    patterns: AdvancedAnalysis = Field(default_factory=AdvancedAnalysis)
    generated_at: datetime


class SummaryRecord(BaseModel):
    """Summary produced to the UI and appended to history"""

    summary_text: str
    focus_score: int = Field(ge=0, le=100)
    period: str
    current_state: CurrentState
    work_score: int
    distraction_score: int
    neutral_score: int
    last_updated: str
    mode: Mode
    created_at: datetime = Field(default_factory=datetime.now)

    def period_minutes(self) -> int:
        return MODE_PERIOD_MINUTES[self.mode]

    def to_flat_dict(self) -> Dict[str, Any]:
        """Flattened row for the summaries table"""
        return {
            "created_at": self.created_at.isoformat(),
            "mode": self.mode.value,
            "period": self.period,
            "current_state": self.current_state.value,
            "summary_text": self.summary_text,
            "focus_score": self.focus_score,
            "work_score": self.work_score,
            "distraction_score": self.distraction_score,
            "neutral_score": self.neutral_score,
            "last_updated": self.last_updated,
        }


MODE_PERIOD_MINUTES: Dict[Mode, int] = {
    Mode.GHOST: 60,
    Mode.CHILL: 60,
    Mode.STUDY_BUDDY: 5,
    Mode.COACH: 15,
}


class DailyReport(BaseModel):
    """Aggregate of one day's stored summaries"""

    day: date
    cycles: int = 0
    average_focus_score: int = 0
    work_score: int = 0
    distraction_score: int = 0
    neutral_score: int = 100
    dominant_state: Optional[CurrentState] = None
    mode_counts: Dict[str, int] = Field(default_factory=dict)
    latest_summary: Optional[str] = None
