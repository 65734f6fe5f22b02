"""
Mode scheduler
Decides on each tick whether the current mode's summary is due
"""

from datetime import datetime

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Mode

from .state import AppState

logger = get_logger(__name__)

MIN_RERUN_SECONDS = 60.0


def is_due(mode: Mode, now: datetime) -> bool:
    """Whether the minute of the hour matches the mode's cadence"""
    minute = now.minute
    if mode in (Mode.GHOST, Mode.CHILL):
        return minute == 0
    if mode == Mode.STUDY_BUDDY:
        return minute % 5 == 0
    if mode == Mode.COACH:
        return minute % 15 == 0
    return False


class ModeScheduler:
    """
    Gates summary generation by wall-clock minute

    A mode that ran less than min_rerun_seconds ago is not run again, so a
    due minute fires at most once even if ticks arrive early or twice.
    """

    def __init__(self, state: AppState, min_rerun_seconds: float = MIN_RERUN_SECONDS):
        self.state = state
        self.min_rerun_seconds = min_rerun_seconds

    async def should_run(self, mode: Mode, now: datetime) -> bool:
        if not is_due(mode, now):
            return False
        last_run = await self.state.get_last_run(mode)
        if last_run is not None and (now - last_run).total_seconds() < self.min_rerun_seconds:
            logger.debug(f"Skipping {mode.value}: ran {(now - last_run).total_seconds():.0f}s ago")
            return False
        return True

    async def mark_run(self, mode: Mode, now: datetime) -> None:
        await self.state.record_run(mode, now)

    async def switch_mode(self, mode: Mode) -> Mode:
        """Switch modes and clear the new mode's last run; returns the previous mode"""
        previous = await self.state.set_mode(mode)
        await self.state.clear_last_run(mode)
        logger.info(f"Mode switched: {previous.value} -> {mode.value}")
        return previous
