"""
Active interval filter
Restricts window events to the periods the user was actually at the machine
"""

from datetime import datetime
from typing import List, Tuple

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event

logger = get_logger(__name__)

ACTIVE_STATUS = "not-afk"

Interval = Tuple[datetime, datetime]


class ActiveIntervalFilter:
    """
    Clips window events to merged "not-afk" intervals

    Window events overlapping several active intervals are split into one
    event per overlap. Events outside every active interval are dropped.
    """

    def __init__(self, active_status: str = ACTIVE_STATUS):
        self.active_status = active_status

    def active_intervals(self, idle_events: List[Event]) -> List[Interval]:
        """Extract active intervals from idle-state events, sorted and merged"""
        intervals = [
            (event.timestamp, event.end)
            for event in idle_events
            if event.status == self.active_status and event.duration_seconds > 0
        ]
        return merge_intervals(intervals)

    def apply(self, window_events: List[Event], idle_events: List[Event]) -> List[Event]:
        """
        Clip window events to active intervals

        Args:
            window_events: Window-focus events
            idle_events: Idle-state events; when empty all window events pass through

        Returns:
            Clipped events, ordered by window event then interval
        """
        if not idle_events:
            return list(window_events)

        intervals = self.active_intervals(idle_events)
        filtered: List[Event] = []

        for event in window_events:
            event_start = event.timestamp
            event_end = event.end
            for interval_start, interval_end in intervals:
                if interval_start >= event_end:
                    break
                if event_start < interval_end and event_end > interval_start:
                    clipped_start = max(event_start, interval_start)
                    clipped_end = min(event_end, interval_end)
                    overlap = (clipped_end - clipped_start).total_seconds()
                    if overlap > 0:
                        filtered.append(
                            event.model_copy(
                                update={
                                    "timestamp": clipped_start,
                                    "duration_seconds": overlap,
                                }
                            )
                        )

        logger.debug(
            f"Active filter kept {len(filtered)} of {len(window_events)} window events "
            f"across {len(intervals)} active intervals"
        )
        return filtered


def merge_intervals(intervals: List[Interval]) -> List[Interval]:
    """Sort intervals and merge overlapping or touching ones"""
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged
