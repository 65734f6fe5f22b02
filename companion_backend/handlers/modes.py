"""
Mode and summary handlers
"""

from companion_backend.core.coordinator import get_coordinator
from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Mode
from companion_backend.models.requests import (
    GenerateSummaryRequest,
    GetLatestSummaryRequest,
    SetModeRequest,
)
from companion_backend.models.responses import ModeData, ModeResponse, SummaryData, SummaryResponse

from . import api_handler

logger = get_logger(__name__)


@api_handler(method="GET")
async def get_current_mode() -> ModeResponse:
    """Get the current operating mode"""
    coordinator = get_coordinator()
    mode = await coordinator.get_mode()
    return ModeResponse(success=True, data=ModeData(mode=mode.value))


@api_handler(body=SetModeRequest)
async def set_mode(body: SetModeRequest) -> ModeResponse:
    """Switch the operating mode

    The new mode's schedule starts fresh and the mode is restored on the
    next start.
    """
    coordinator = get_coordinator()
    mode = Mode(body.mode)
    try:
        previous = await coordinator.set_mode(mode)
    except Exception as e:
        logger.error(f"Failed to set mode {mode.value}: {e}", exc_info=True)
        return ModeResponse(success=False, message="Failed to set mode", error=str(e))

    return ModeResponse(
        success=True,
        message=f"Mode set to {mode.value}",
        data=ModeData(mode=mode.value, previous=previous.value),
    )


@api_handler(body=GetLatestSummaryRequest, method="GET")
async def get_latest_summary(body: GetLatestSummaryRequest) -> SummaryResponse:
    """Latest summary of a mode, or of any mode when none is given"""
    coordinator = get_coordinator()
    mode = Mode(body.mode) if body.mode else None
    record = await coordinator.get_latest_summary(mode)
    if record is None:
        return SummaryResponse(success=True, message="No summary yet")
    return SummaryResponse(success=True, data=SummaryData.from_record(record))


@api_handler(body=GenerateSummaryRequest)
async def generate_summary(body: GenerateSummaryRequest) -> SummaryResponse:
    """Generate a summary now, regardless of the schedule"""
    coordinator = get_coordinator()
    mode = Mode(body.mode) if body.mode else None
    try:
        record = await coordinator.generate_summary_now(mode)
    except Exception as e:
        logger.error(f"Summary generation failed: {e}", exc_info=True)
        return SummaryResponse(success=False, message="Summary generation failed", error=str(e))

    if record is None:
        return SummaryResponse(
            success=False,
            message="No summary produced",
            error="No activity data available or tracking service unreachable",
        )
    return SummaryResponse(success=True, message="Summary generated", data=SummaryData.from_record(record))
