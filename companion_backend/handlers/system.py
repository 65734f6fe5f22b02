"""
System handlers

Connection checks, model listing and the daily report
"""

from datetime import date

from companion_backend.core.coordinator import get_coordinator
from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.logger import get_logger
from companion_backend.models.requests import GetDailyReportRequest
from companion_backend.models.responses import (
    ConnectionStatusData,
    ConnectionStatusResponse,
    DailyReportResponse,
    LLMModelsData,
    LLMModelsResponse,
)
from companion_backend.processing.daily_report import DailyReportBuilder

from . import api_handler

logger = get_logger(__name__)


@api_handler(method="GET")
async def check_connections() -> ConnectionStatusResponse:
    """Check the tracking service and the model backend

    @returns Availability and latency of each service
    """
    coordinator = get_coordinator()
    status = await coordinator.check_connections()
    both = status["activitywatch"].get("available") and status["llm"].get("available")
    return ConnectionStatusResponse(
        success=True,
        message="All services reachable" if both else "Some services are unreachable",
        data=ConnectionStatusData(**status),
    )


@api_handler(method="GET")
async def get_llm_models() -> LLMModelsResponse:
    """List models installed on the model backend"""
    coordinator = get_coordinator()
    coordinator.ensure_components_initialized()
    manager = coordinator.llm_manager
    try:
        models = await manager.list_models()
    except LLMUnavailableError as e:
        logger.warning(f"Could not list models: {e}")
        return LLMModelsResponse(success=False, message="Model backend unavailable", error=str(e))

    return LLMModelsResponse(
        success=True,
        data=LLMModelsData(models=models, active_model=manager.get_active_model_info()["model"]),
    )


@api_handler(body=GetDailyReportRequest, method="GET")
async def get_daily_report(body: GetDailyReportRequest) -> DailyReportResponse:
    """Aggregate the stored summaries of a day"""
    coordinator = get_coordinator()
    coordinator.ensure_components_initialized()
    day = body.day or date.today()
    try:
        report = await DailyReportBuilder(coordinator.handlers.summaries).build(day)
    except Exception as e:
        logger.error(f"Failed to build daily report for {day}: {e}", exc_info=True)
        return DailyReportResponse(success=False, message="Failed to build daily report", error=str(e))

    return DailyReportResponse(success=True, data=report.model_dump(mode="json"))
