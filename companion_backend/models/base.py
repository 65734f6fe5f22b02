"""
Base models shared by handler requests and responses
Fields are snake_case in Python and camelCase on the wire
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseModel(PydanticBaseModel):
    """Base model with camelCase aliases for the UI collaborator"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class OperationResponse(BaseModel):
    """Generic success/failure response"""

    success: bool
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None


class TimedOperationResponse(OperationResponse):
    """Operation response carrying the time it was produced"""

    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
