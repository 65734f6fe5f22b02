"""
Data models
Activity domain, analysis records and handler request/response schemas
"""

from .activity import (
    AppCategory,
    CategoryOrigin,
    CategoryRecord,
    CurrentState,
    Event,
    Mode,
    Stats,
    TimeframeKey,
    TimeframeSnapshot,
)
from .analysis import (
    AdvancedAnalysis,
    AnalysisResult,
    ContextAssessment,
    DistractionEvent,
    FatigueAnalysis,
    LLMAnalysis,
    ProductivityMetrics,
    RabbitHoleAnalysis,
    ReturnToTaskMetrics,
    SummaryRecord,
    WorkSession,
)

__all__ = [
    "AdvancedAnalysis",
    "AnalysisResult",
    "AppCategory",
    "CategoryOrigin",
    "CategoryRecord",
    "ContextAssessment",
    "CurrentState",
    "DistractionEvent",
    "Event",
    "FatigueAnalysis",
    "LLMAnalysis",
    "Mode",
    "ProductivityMetrics",
    "RabbitHoleAnalysis",
    "ReturnToTaskMetrics",
    "Stats",
    "SummaryRecord",
    "TimeframeKey",
    "TimeframeSnapshot",
    "WorkSession",
]
