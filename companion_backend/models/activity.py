"""
Activity domain models
Events read from the tracking service, timeframe snapshots and app categories
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime (naive values are taken as UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Event(BaseModel):
    """A single tracking-service event (window focus or idle state)"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    timestamp: datetime
    duration_seconds: float = Field(default=0.0, alias="duration")
    attributes: Dict[str, Any] = Field(default_factory=dict, alias="data")

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _clamp_duration(cls, value: Any) -> float:
        if value is None:
            return 0.0
        return max(0.0, float(value))

    @field_validator("attributes", mode="before")
    @classmethod
    def _default_attributes(cls, value: Any) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def end(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration_seconds)

    @property
    def app(self) -> str:
        return str(self.attributes.get("app") or "")

    @property
    def title(self) -> str:
        return str(self.attributes.get("title") or "")

    @property
    def status(self) -> str:
        return str(self.attributes.get("status") or "")


class TimeframeKey(str, Enum):
    """Rolling windows kept by the aggregator"""

    FIVE_MINUTES = "5_minutes"
    TEN_MINUTES = "10_minutes"
    THIRTY_MINUTES = "30_minutes"
    ONE_HOUR = "1_hour"
    TODAY = "today"


class Stats(BaseModel):
    """Summary numbers for one timeframe"""

    event_count: int = 0
    unique_apps: Set[str] = Field(default_factory=set)
    active_minutes: float = 0.0
    context_switch_count: int = 0


class TimeframeSnapshot(BaseModel):
    """Active window events of one timeframe plus their stats"""

    key: TimeframeKey
    start: datetime
    end: datetime
    window_events: List[Event] = Field(default_factory=list)
    idle_events: List[Event] = Field(default_factory=list)
    stats: Stats = Field(default_factory=Stats)

    @model_validator(mode="after")
    def _check_bounds(self) -> "TimeframeSnapshot":
        if self.start > self.end:
            raise ValueError("Timeframe start must not be after its end")
        return self


class AppCategory(str, Enum):
    WORK = "work"
    DEVELOPMENT = "development"
    PRODUCTIVITY = "productivity"
    COMMUNICATION = "communication"
    ENTERTAINMENT = "entertainment"
    SYSTEM = "system"
    OTHER = "other"
    UNCATEGORIZED = "uncategorized"


class CategoryOrigin(str, Enum):
    """Where a category record came from

    Only AUTO and USER records are persisted. DEFAULT marks static table
    hits, PENDING the interim placeholder for apps awaiting categorization.
    """

    AUTO = "auto"
    USER = "user"
    DEFAULT = "default"
    PENDING = "pending"


class CategoryRecord(BaseModel):
    """Category assigned to an application"""

    model_config = ConfigDict(frozen=True)

    app_name: str
    category: str
    subcategory: Optional[str] = None
    productivity_score: Optional[int] = Field(default=None, ge=0, le=100)
    origin: CategoryOrigin = CategoryOrigin.DEFAULT
    updated_at: Optional[datetime] = None

    @field_validator("category")
    @classmethod
    def _lower_category(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def is_uncategorized(self) -> bool:
        return self.category == AppCategory.UNCATEGORIZED.value


class Mode(str, Enum):
    """Operating modes; each decides how often summaries fire"""

    GHOST = "ghost"
    CHILL = "chill"
    STUDY_BUDDY = "study_buddy"
    COACH = "coach"


class CurrentState(str, Enum):
    """Canonical productivity state vocabulary"""

    PRODUCTIVE = "productive"
    MODERATE = "moderate"
    CHILLING = "chilling"
    UNPRODUCTIVE = "unproductive"
    AFK = "afk"

    @classmethod
    def from_label(
        cls, label: Optional[str], default: Optional["CurrentState"] = None
    ) -> "CurrentState":
        """Map a canonical or legacy label onto the vocabulary

        Legacy labels: flow -> productive, working -> moderate,
        needs_nudge -> unproductive.
        """
        fallback = default or cls.MODERATE
        if not label:
            return fallback
        key = label.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return LEGACY_STATES.get(key, fallback)


LEGACY_STATES: Dict[str, CurrentState] = {
    "flow": CurrentState.PRODUCTIVE,
    "working": CurrentState.MODERATE,
    "needs_nudge": CurrentState.UNPRODUCTIVE,
    "afk": CurrentState.AFK,
}
