"""
Tests for clipping window events to active intervals
"""

from datetime import timedelta

from conftest import NOW, make_event

from companion_backend.perception.interval_filter import ActiveIntervalFilter, merge_intervals


def at(minutes):
    return NOW - timedelta(minutes=60) + timedelta(minutes=minutes)


def test_merge_intervals_sorts_and_merges_overlaps():
    intervals = [(at(20), at(30)), (at(0), at(10)), (at(5), at(12)), (at(30), at(35))]

    merged = merge_intervals(intervals)

    assert merged == [(at(0), at(12)), (at(20), at(35))]


def test_merge_intervals_keeps_disjoint_ranges():
    intervals = [(at(0), at(1)), (at(2), at(3))]
    assert merge_intervals(intervals) == intervals


def test_no_idle_data_passes_everything_through():
    window = [make_event(at(0), 600, app="code")]
    assert ActiveIntervalFilter().apply(window, []) == window


def test_events_clipped_to_active_time():
    window = [make_event(at(0), 30 * 60, app="code", title="main.py")]
    idle = [
        make_event(at(0), 10 * 60, status="not-afk"),
        make_event(at(10), 10 * 60, status="afk"),
        make_event(at(20), 5 * 60, status="not-afk"),
    ]

    clipped = ActiveIntervalFilter().apply(window, idle)

    assert [(event.timestamp, event.duration_seconds) for event in clipped] == [
        (at(0), 600.0),
        (at(20), 300.0),
    ]
    assert all(event.app == "code" and event.title == "main.py" for event in clipped)
    assert sum(event.duration_seconds for event in clipped) <= window[0].duration_seconds


def test_events_outside_active_time_are_dropped():
    window = [make_event(at(40), 120, app="spotify")]
    idle = [make_event(at(0), 10 * 60, status="not-afk"), make_event(at(10), 50 * 60, status="afk")]

    assert ActiveIntervalFilter().apply(window, idle) == []


def test_only_afk_data_drops_all_window_events():
    window = [make_event(at(0), 60, app="code")]
    idle = [make_event(at(0), 3600, status="afk")]

    assert ActiveIntervalFilter().apply(window, idle) == []


def test_overlapping_active_intervals_do_not_double_count():
    window = [make_event(at(0), 20 * 60, app="code")]
    idle = [
        make_event(at(0), 10 * 60, status="not-afk"),
        make_event(at(5), 10 * 60, status="not-afk"),
    ]

    clipped = ActiveIntervalFilter().apply(window, idle)

    assert len(clipped) == 1
    assert clipped[0].duration_seconds == 15 * 60
