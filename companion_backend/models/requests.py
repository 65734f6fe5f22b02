"""
Request models for API handlers
"""

from datetime import date
from typing import List, Optional

from pydantic import Field, field_validator

from .activity import Mode
from .base import BaseModel


class SetModeRequest(BaseModel):
    """Switch the operating mode"""

    mode: Mode


class GenerateSummaryRequest(BaseModel):
    """Generate a summary now; the current mode when mode is omitted"""

    mode: Optional[Mode] = None


class GetLatestSummaryRequest(BaseModel):
    mode: Optional[Mode] = None


class UpdateAppCategoryRequest(BaseModel):
    """Manual category for one application"""

    app_name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    subcategory: Optional[str] = None
    productivity_score: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator("app_name", "category")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class BulkUpdateCategoriesRequest(BaseModel):
    updates: List[UpdateAppCategoryRequest]


class GetDailyReportRequest(BaseModel):
    """Report for a calendar day; today when omitted"""

    day: Optional[date] = None
