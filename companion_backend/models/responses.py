"""
Response models for API handlers
Provides strongly typed response models for the UI collaborator
"""

from typing import Any, Dict, List, Optional

from .activity import CategoryRecord
from .analysis import SummaryRecord
from .base import BaseModel, TimedOperationResponse


# Mode responses
class ModeData(BaseModel):
    """Current mode, with the previous one after a switch"""

    mode: str
    previous: Optional[str] = None


class ModeResponse(TimedOperationResponse):
    data: Optional[ModeData] = None


# Summary responses
class SummaryData(BaseModel):
    """Summary as shown in the UI"""

    summary: str
    focus_score: int
    period: str
    current_state: str
    work_score: int
    distraction_score: int
    neutral_score: int
    last_updated: str
    mode: str

    @classmethod
    def from_record(cls, record: SummaryRecord) -> "SummaryData":
        return cls(
            summary=record.summary_text,
            focus_score=record.focus_score,
            period=record.period,
            current_state=record.current_state.value,
            work_score=record.work_score,
            distraction_score=record.distraction_score,
            neutral_score=record.neutral_score,
            last_updated=record.last_updated,
            mode=record.mode.value,
        )


class SummaryResponse(TimedOperationResponse):
    data: Optional[SummaryData] = None


# Category responses
class AppCategoryData(BaseModel):
    app_name: str
    category: str
    subcategory: Optional[str] = None
    productivity_score: Optional[int] = None
    origin: str

    @classmethod
    def from_record(cls, record: CategoryRecord) -> "AppCategoryData":
        return cls(
            app_name=record.app_name,
            category=record.category,
            subcategory=record.subcategory,
            productivity_score=record.productivity_score,
            origin=record.origin.value,
        )


class AppCategoriesResponse(TimedOperationResponse):
    data: List[AppCategoryData] = []


class AppCategoryResponse(TimedOperationResponse):
    data: Optional[AppCategoryData] = None


class BulkUpdateData(BaseModel):
    updated: int
    failed: List[str] = []


class BulkUpdateResponse(TimedOperationResponse):
    data: Optional[BulkUpdateData] = None


# System responses
class ConnectionStatusData(BaseModel):
    """Reachability of the tracking service and the model backend"""

    activitywatch: Dict[str, Any]
    llm: Dict[str, Any]


class ConnectionStatusResponse(TimedOperationResponse):
    data: Optional[ConnectionStatusData] = None


class LLMModelsData(BaseModel):
    models: List[str]
    active_model: Optional[str] = None


class LLMModelsResponse(TimedOperationResponse):
    data: Optional[LLMModelsData] = None


class DailyReportResponse(TimedOperationResponse):
    data: Optional[Dict[str, Any]] = None
