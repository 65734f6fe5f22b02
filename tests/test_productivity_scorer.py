"""
Tests for the local productivity scorer
"""

from datetime import timedelta

import pytest
from conftest import NOW, make_event

from companion_backend.models.activity import (
    CategoryOrigin,
    CategoryRecord,
    CurrentState,
    TimeframeKey,
    TimeframeSnapshot,
)
from companion_backend.processing.aggregator import compute_stats
from companion_backend.processing.productivity_scorer import (
    MODERATE,
    NEUTRAL,
    PRODUCTIVE,
    UNPRODUCTIVE,
    ProductivityScorer,
    bucket_for,
    focus_score,
    normalize_percentages,
)


def record(app, category, score=None):
    return CategoryRecord(
        app_name=app, category=category, productivity_score=score, origin=CategoryOrigin.DEFAULT
    )


CATEGORIES = {
    "code": record("code", "development", 95),
    "spotify": record("spotify", "entertainment", 30),
    "discord": record("discord", "communication", 40),
    "chrome": record("chrome", "productivity", 60),
}


@pytest.mark.parametrize(
    "values, expected",
    [
        ((1, 1, 1), (34, 33, 33)),
        ((2, 1, 0), (67, 33, 0)),
        ((0, 0, 0), (0, 0, 100)),
        ((-5, 10, 0), (0, 100, 0)),
        ((12.5, 12.5, 75), (13, 12, 75)),
    ],
)
def test_normalize_percentages(values, expected):
    result = normalize_percentages(*values)
    assert result == expected
    assert sum(result) == 100


def test_bucket_for_prefers_explicit_score():
    assert bucket_for(record("x", "entertainment", 85)) == PRODUCTIVE
    assert bucket_for(record("x", "development", 65)) == MODERATE
    assert bucket_for(record("x", "development", 45)) == NEUTRAL
    assert bucket_for(record("x", "work", 10)) == UNPRODUCTIVE


def test_bucket_for_falls_back_to_category():
    assert bucket_for(record("x", "entertainment")) == UNPRODUCTIVE
    assert bucket_for(record("x", "productivity")) == MODERATE
    assert bucket_for(record("x", "uncategorized")) == NEUTRAL
    assert bucket_for(None) == NEUTRAL


def test_focus_score_penalties():
    assert focus_score(0.9, 30, 12) == 70
    assert focus_score(0.9, 240, 2) == 70
    assert focus_score(0.1, 120, 3) == 0
    assert focus_score(1.0, 0, 1) == 100


class TestProductivityScorer:
    def test_focused_work_is_productive(self):
        metrics = ProductivityScorer().score({"Code.exe": 45, "spotify": 5}, CATEGORIES, 2, 1.0)

        assert metrics.current_state == CurrentState.PRODUCTIVE
        assert (
            metrics.work_percentage,
            metrics.distraction_percentage,
            metrics.neutral_percentage,
        ) == (90, 10, 0)
        assert metrics.unique_apps == 2
        assert ProductivityScorer.focus_score(metrics) == 90

    def test_switching_downgrades_productive_work(self):
        metrics = ProductivityScorer().score({"code": 45, "spotify": 5}, CATEGORIES, 40, 1.0)

        assert metrics.context_switches_per_hour == pytest.approx(40.0)
        assert metrics.current_state == CurrentState.MODERATE

    def test_mostly_entertainment_is_unproductive(self):
        metrics = ProductivityScorer().score({"spotify": 40, "code": 10}, CATEGORIES, 1, 1.0)
        assert metrics.current_state == CurrentState.UNPRODUCTIVE
        assert metrics.distraction_percentage == 80

    def test_neutral_time_is_chilling(self):
        metrics = ProductivityScorer().score({"discord": 30, "code": 10}, CATEGORIES, 1, 1.0)
        assert metrics.current_state == CurrentState.CHILLING

    def test_no_activity_is_afk(self):
        metrics = ProductivityScorer().score({}, CATEGORIES, 0, 1.0)

        assert metrics.current_state == CurrentState.AFK
        assert (
            metrics.work_percentage,
            metrics.distraction_percentage,
            metrics.neutral_percentage,
        ) == (0, 0, 100)

    def test_unknown_apps_count_as_neutral(self):
        metrics = ProductivityScorer().score({"zettlr": 20}, {}, 0, 1.0)
        assert metrics.neutral_minutes == pytest.approx(20.0)
        assert metrics.neutral_percentage == 100

    def test_score_snapshot(self):
        start = NOW - timedelta(minutes=30)
        events = [
            make_event(start, 20 * 60, app="code"),
            make_event(start + timedelta(minutes=20), 10 * 60, app="spotify"),
        ]
        snapshot = TimeframeSnapshot(
            key=TimeframeKey.THIRTY_MINUTES,
            start=start,
            end=NOW,
            window_events=events,
            stats=compute_stats(events),
        )

        metrics = ProductivityScorer().score_snapshot(snapshot, CATEGORIES)

        assert metrics.current_state == CurrentState.MODERATE
        assert metrics.work_percentage == 67
        assert metrics.distraction_percentage == 33
        assert metrics.context_switches_per_hour == pytest.approx(2.0)
