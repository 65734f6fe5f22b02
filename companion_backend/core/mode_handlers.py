"""
Mode handlers
One summary cycle per mode: ghost is time-of-day only, the other modes run
the analysis pipeline with mode-specific context and notifications
"""

from datetime import datetime, timedelta
from typing import List, Optional

from companion_backend.models.activity import CurrentState, Mode
from companion_backend.models.analysis import (
    MODE_PERIOD_MINUTES,
    AnalysisResult,
    SummaryRecord,
)
from companion_backend.processing.pipeline import AnalysisPipeline

from .events import (
    emit_coach_todos,
    emit_log_message,
    emit_notification,
    emit_summary_updated,
)
from .exceptions import AnalysisCycleError, TrackingServiceError
from .logger import get_logger
from .protocols import SummaryRepositoryProtocol
from .settings import SettingsManager, UserSettings
from .state import AppState

logger = get_logger(__name__)

GHOST_SCORES = (50, 30, 20)


def time_based_focus_score(hour: int) -> int:
    if 9 <= hour <= 11:
        return 80
    if 14 <= hour <= 16:
        return 75
    if 12 <= hour <= 13:
        return 60
    if 17 <= hour <= 18:
        return 65
    if 19 <= hour <= 22:
        return 55
    return 40


def time_based_summary(hour: int) -> str:
    if 6 <= hour <= 8:
        return "Starting the day - establishing focus patterns"
    if 9 <= hour <= 11:
        return "Morning work session - peak productivity time"
    if 12 <= hour <= 13:
        return "Mid-day transition - maintaining momentum"
    if 14 <= hour <= 16:
        return "Afternoon focus period - deep work time"
    if 17 <= hour <= 19:
        return "Evening wind-down - wrapping up tasks"
    if 20 <= hour <= 23:
        return "Night session - light activities"
    return "Late night activity - rest recommended"


def state_for_focus(focus_score: int) -> CurrentState:
    if focus_score > 80:
        return CurrentState.PRODUCTIVE
    if focus_score > 60:
        return CurrentState.MODERATE
    if focus_score > 40:
        return CurrentState.CHILLING
    return CurrentState.UNPRODUCTIVE


def format_period(now: datetime, minutes: int) -> str:
    """'HH:MM-HH:MM' window ending at now"""
    return f"{(now - timedelta(minutes=minutes)).strftime('%H:%M')}-{now.strftime('%H:%M')}"


def study_context(user_context: str, study_focus: str) -> str:
    return (
        f"{user_context} Currently studying: {study_focus}. Analyze whether activities "
        "align with study goals. Pay special attention to distractions from study material."
    )


def coach_context(user_context: str, coach_task: str) -> str:
    return f"{user_context} Current task: {coach_task}. Judge progress toward this task."


def coach_todos(coach_task: str, result: AnalysisResult) -> List[str]:
    todos = [f"Work on: {coach_task}"]
    if result.state == CurrentState.UNPRODUCTIVE:
        todos.append("Close distracting tabs and apps before the next check-in")
    return todos


class ModeHandlers:
    """Produces, stores and publishes one summary for a mode"""

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        state: AppState,
        settings: SettingsManager,
        summaries: Optional[SummaryRepositoryProtocol] = None,
    ):
        self.pipeline = pipeline
        self.state = state
        self.settings = settings
        self.summaries = summaries

    async def run(self, mode: Mode, now: Optional[datetime] = None) -> Optional[SummaryRecord]:
        """
        Run one cycle of the given mode

        Args:
            mode: Mode to run
            now: Local reference time

        Returns:
            The published summary, or None if the cycle produced nothing
        """
        now = now or datetime.now().astimezone()
        user = self.settings.get_user_settings()

        if mode == Mode.GHOST:
            record = self._ghost_record(now)
        else:
            record = await self._analysis_record(mode, user, now)
            if record is None:
                return None

        await self._publish(record)
        self._notify(mode, record, user)
        return record

    def _ghost_record(self, now: datetime) -> SummaryRecord:
        focus = time_based_focus_score(now.hour)
        work, distraction, neutral = GHOST_SCORES
        return SummaryRecord(
            summary_text=time_based_summary(now.hour),
            focus_score=focus,
            period=format_period(now, MODE_PERIOD_MINUTES[Mode.GHOST]),
            current_state=state_for_focus(focus),
            work_score=work,
            distraction_score=distraction,
            neutral_score=neutral,
            last_updated=now.strftime("%H:%M"),
            mode=Mode.GHOST,
        )

    async def _analysis_record(
        self, mode: Mode, user: UserSettings, now: datetime
    ) -> Optional[SummaryRecord]:
        if mode == Mode.STUDY_BUDDY:
            context = study_context(user.context, user.study_focus)
        elif mode == Mode.COACH:
            context = coach_context(user.context, user.coach_task)
        else:
            context = user.context

        guidance = user.mode_prompt(mode)
        if guidance:
            context = f"{context}\nMode guidance: {guidance}"

        try:
            outcome = await self.pipeline.run(context, now)
        except TrackingServiceError as e:
            message = f"ActivityWatch not reachable, skipping {mode.value} check: {e}"
            logger.warning(message)
            emit_log_message("warn", message)
            return None
        except AnalysisCycleError as e:
            message = f"Skipping {mode.value} summary: {e}"
            logger.info(message)
            emit_log_message("info", message)
            return None

        result = outcome.result
        summary_text = result.summary_text
        if mode == Mode.STUDY_BUDDY:
            summary_text = f"{summary_text} [Study Focus: {user.study_focus}]"

        if mode == Mode.COACH:
            emit_coach_todos(coach_todos(user.coach_task, result))

        return SummaryRecord(
            summary_text=summary_text,
            focus_score=result.focus_score,
            period=format_period(now, MODE_PERIOD_MINUTES[mode]),
            current_state=result.state,
            work_score=result.work_score,
            distraction_score=result.distraction_score,
            neutral_score=result.neutral_score,
            last_updated=now.strftime("%H:%M"),
            mode=mode,
        )

    async def _publish(self, record: SummaryRecord) -> None:
        await self.state.set_summary(record)

        if self.summaries is not None:
            try:
                await self.summaries.append(record.to_flat_dict())
            except Exception as e:
                logger.error(f"Failed to store {record.mode.value} summary: {e}", exc_info=True)

        emit_summary_updated(record)
        logger.info(
            f"✓ {record.mode.value} summary: state={record.current_state.value}, "
            f"focus={record.focus_score}, period={record.period}"
        )

    def _notify(self, mode: Mode, record: SummaryRecord, user: UserSettings) -> None:
        if not user.notifications_enabled:
            return
        if mode == Mode.CHILL and record.current_state == CurrentState.UNPRODUCTIVE:
            emit_notification("Time for a change?", user.chill_prompt or record.summary_text)
        elif mode == Mode.STUDY_BUDDY and record.current_state == CurrentState.UNPRODUCTIVE:
            emit_notification("Study Focus", user.study_prompt or record.summary_text)
        elif mode == Mode.COACH:
            emit_notification("Coach Check-in", user.coach_prompt or record.summary_text)
