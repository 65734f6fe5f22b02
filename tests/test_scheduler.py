"""
Tests for the mode scheduler and shared state
"""

from datetime import datetime, timedelta

import pytest

from companion_backend.core.scheduler import ModeScheduler, is_due
from companion_backend.core.state import AppState
from companion_backend.models.activity import CurrentState, Mode
from companion_backend.models.analysis import SummaryRecord

HOUR = datetime(2026, 3, 10, 9, 0, 0)


def minute(value, second=0):
    return HOUR + timedelta(minutes=value, seconds=second)


@pytest.mark.parametrize(
    "mode, due_minutes",
    [
        (Mode.GHOST, {0}),
        (Mode.CHILL, {0}),
        (Mode.STUDY_BUDDY, set(range(0, 60, 5))),
        (Mode.COACH, {0, 15, 30, 45}),
    ],
)
def test_cadence(mode, due_minutes):
    assert {m for m in range(60) if is_due(mode, minute(m))} == due_minutes


@pytest.mark.asyncio
async def test_coach_fires_at_quarter_hour_after_earlier_run():
    state = AppState(Mode.COACH)
    scheduler = ModeScheduler(state)
    await scheduler.mark_run(Mode.COACH, minute(0))

    assert await scheduler.should_run(Mode.COACH, minute(15)) is True


@pytest.mark.asyncio
async def test_recent_run_blocks_regardless_of_minute():
    state = AppState(Mode.COACH)
    scheduler = ModeScheduler(state)
    await scheduler.mark_run(Mode.COACH, minute(14, 40))

    assert await scheduler.should_run(Mode.COACH, minute(15, 10)) is False
    assert await scheduler.should_run(Mode.COACH, minute(30)) is True


@pytest.mark.asyncio
async def test_not_due_minute_never_fires():
    scheduler = ModeScheduler(AppState())
    assert await scheduler.should_run(Mode.STUDY_BUDDY, minute(7)) is False


@pytest.mark.asyncio
async def test_switch_mode_clears_new_mode_history():
    state = AppState(Mode.COACH)
    scheduler = ModeScheduler(state)
    await scheduler.mark_run(Mode.STUDY_BUDDY, minute(15))
    await scheduler.mark_run(Mode.COACH, minute(15))

    previous = await scheduler.switch_mode(Mode.STUDY_BUDDY)

    assert previous == Mode.COACH
    assert await state.get_mode() == Mode.STUDY_BUDDY
    assert await state.get_last_run(Mode.STUDY_BUDDY) is None
    assert await state.get_last_run(Mode.COACH) == minute(15)
    # Fires at the next due minute even within the rerun window
    assert await scheduler.should_run(Mode.STUDY_BUDDY, minute(15, 30)) is True


@pytest.mark.asyncio
async def test_summaries_kept_per_mode():
    state = AppState()

    def summary(mode, text):
        return SummaryRecord(
            summary_text=text,
            focus_score=50,
            period="09:00-10:00",
            current_state=CurrentState.MODERATE,
            work_score=50,
            distraction_score=30,
            neutral_score=20,
            last_updated="10:00",
            mode=mode,
        )

    assert await state.get_summary() is None
    await state.set_summary(summary(Mode.GHOST, "ghost"))
    await state.set_summary(summary(Mode.COACH, "coach"))

    assert (await state.get_summary()).summary_text == "coach"
    assert (await state.get_summary(Mode.GHOST)).summary_text == "ghost"
    assert await state.get_summary(Mode.CHILL) is None
