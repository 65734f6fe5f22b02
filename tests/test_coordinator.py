"""
Tests for the coordinator tick loop and mode management
"""

import asyncio
from datetime import timedelta

import pytest
from conftest import NOW, FakeLLMManager, FakeTrackingService, make_event

from companion_backend.core.coordinator import AnalysisCoordinator
from companion_backend.core.settings import CURRENT_MODE_KEY
from companion_backend.models.activity import Mode, TimeframeKey


@pytest.fixture
def service():
    return FakeTrackingService(
        window=[
            make_event(NOW - timedelta(minutes=25), 20 * 60, app="Code.exe", title="main.py"),
            make_event(NOW - timedelta(minutes=5), 4 * 60, app="zettlr", title="notes.md"),
        ]
    )


@pytest.fixture
def coordinator(config, db, service):
    return AnalysisCoordinator(
        config=config, db=db, fetcher=service.fetcher(), llm_manager=FakeLLMManager()
    )


def test_components_built_from_config(coordinator):
    coordinator.ensure_components_initialized()

    assert coordinator.pipeline.scoring_timeframe == TimeframeKey.THIRTY_MINUTES
    assert coordinator.pipeline.timeline_timeframe == TimeframeKey.THIRTY_MINUTES
    assert coordinator.category_agent is not None
    assert coordinator.category_agent.batch_size == 10
    assert coordinator.tick_interval == 60


@pytest.mark.asyncio
async def test_tick_runs_due_mode_once(coordinator, emitted):
    record = await coordinator.tick(NOW)

    assert record is not None
    assert record.mode == Mode.COACH
    assert "summary_updated" in [name for name, _ in emitted]

    # Same minute again: already ran
    assert await coordinator.tick(NOW + timedelta(seconds=20)) is None
    # Not a coach minute
    assert await coordinator.tick(NOW + timedelta(minutes=7)) is None

    stats = coordinator.get_stats()["coordinator"]
    assert stats["ticks"] == 3
    assert stats["summaries"] == 1


@pytest.mark.asyncio
async def test_tick_queues_unknown_apps_for_categorization(coordinator):
    await coordinator.tick(NOW)
    assert coordinator.resolver.pending_batch() == ["zettlr"]


@pytest.mark.asyncio
async def test_set_mode_persists_and_announces(coordinator, db, config, emitted):
    previous = await coordinator.set_mode(Mode.STUDY_BUDDY)

    assert previous == Mode.COACH
    assert await coordinator.get_mode() == Mode.STUDY_BUDDY
    assert db.settings.get(CURRENT_MODE_KEY) == "study_buddy"
    assert ("mode_changed", {"type": "mode_changed", "mode": "study_buddy", "previous": "coach"}) in emitted

    restarted = AnalysisCoordinator(
        config=config, db=db, fetcher=FakeTrackingService().fetcher(), llm_manager=FakeLLMManager()
    )
    assert await restarted.get_mode() == Mode.STUDY_BUDDY


@pytest.mark.asyncio
async def test_switched_mode_fires_at_next_due_minute(coordinator):
    await coordinator.tick(NOW)
    await coordinator.set_mode(Mode.STUDY_BUDDY)

    record = await coordinator.tick(NOW + timedelta(seconds=30))

    assert record is not None
    assert record.mode == Mode.STUDY_BUDDY


@pytest.mark.asyncio
async def test_generate_summary_now_ignores_schedule(coordinator):
    off_minute = NOW + timedelta(minutes=7)

    record = await coordinator.generate_summary_now(Mode.GHOST, off_minute)

    assert record.mode == Mode.GHOST
    assert await coordinator.get_latest_summary(Mode.GHOST) == record
    assert await coordinator.get_latest_summary() == record


@pytest.mark.asyncio
async def test_check_connections(coordinator):
    status = await coordinator.check_connections()

    assert status["activitywatch"]["available"] is True
    assert status["llm"]["available"] is True


@pytest.mark.asyncio
async def test_start_pause_resume_stop(coordinator):
    coordinator.tick_interval = 3600
    await coordinator.start()
    await asyncio.sleep(0)

    assert coordinator.is_running
    assert coordinator.category_agent.is_running
    assert coordinator.get_stats()["coordinator"]["status"] == "running"

    coordinator.pause()
    assert coordinator.is_paused and coordinator.category_agent.is_paused
    coordinator.resume()
    assert not coordinator.is_paused

    await coordinator.stop()

    assert not coordinator.is_running
    assert coordinator.tick_task is None
    assert not coordinator.category_agent.is_running
    assert coordinator.llm_manager.closed == 1
    assert coordinator.get_stats()["coordinator"]["status"] == "stopped"


@pytest.mark.asyncio
async def test_slow_tick_skips_missed_ticks(coordinator, monkeypatch):
    loop = asyncio.get_running_loop()
    started = []

    async def slow_first_tick(now=None):
        started.append(loop.time())
        if len(started) == 1:
            await asyncio.sleep(0.35)
        return None

    monkeypatch.setattr(coordinator, "tick", slow_first_tick)
    coordinator.tick_interval = 0.1

    await coordinator.start()
    await asyncio.sleep(0.6)
    await coordinator.stop()

    assert len(started) >= 2
    gaps = [later - earlier for earlier, later in zip(started, started[1:])]
    # No burst of catch-up ticks after the slow one
    assert min(gaps) >= 0.05
    assert gaps[0] >= 0.35
    assert coordinator.stats["skipped_ticks"] >= 1
    assert coordinator.get_stats()["coordinator"]["skipped_ticks"] == coordinator.stats["skipped_ticks"]
