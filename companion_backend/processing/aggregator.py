"""
Multi-timeframe aggregator
Fetches today's activity once and derives rolling 5/10/30/60-minute and
whole-day views from it
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import (
    Event,
    Stats,
    TimeframeKey,
    TimeframeSnapshot,
    ensure_utc,
)
from companion_backend.perception.activity_watch import TimeRangeFetcher
from companion_backend.perception.interval_filter import ActiveIntervalFilter

logger = get_logger(__name__)

FIXED_TIMEFRAMES: Dict[TimeframeKey, timedelta] = {
    TimeframeKey.FIVE_MINUTES: timedelta(minutes=5),
    TimeframeKey.TEN_MINUTES: timedelta(minutes=10),
    TimeframeKey.THIRTY_MINUTES: timedelta(minutes=30),
    TimeframeKey.ONE_HOUR: timedelta(hours=1),
}

MIN_TODAY_SPAN = timedelta(hours=1)


def timeframe_start(key: TimeframeKey, now: datetime) -> datetime:
    """Start of a timeframe ending at now

    "today" starts at local midnight but never spans less than one hour.
    """
    now = ensure_utc(now)
    if key in FIXED_TIMEFRAMES:
        return now - FIXED_TIMEFRAMES[key]

    local_now = now.astimezone()
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return min(midnight.astimezone(timezone.utc), now - MIN_TODAY_SPAN)


def sort_chronologically(events: List[Event]) -> List[Event]:
    return sorted(events, key=lambda event: event.timestamp)


def count_context_switches(events: List[Event]) -> int:
    """Count app changes between consecutive events (case-insensitive)"""
    switches = 0
    previous: Optional[str] = None
    for event in sort_chronologically(events):
        app = event.app.lower()
        if not app:
            continue
        if previous is not None and app != previous:
            switches += 1
        previous = app
    return switches


def compute_stats(events: List[Event]) -> Stats:
    return Stats(
        event_count=len(events),
        unique_apps={event.app.lower() for event in events if event.app},
        active_minutes=sum(event.duration_seconds for event in events) / 60.0,
        context_switch_count=count_context_switches(events),
    )


def top_apps(events: List[Event], limit: int = 5) -> List[Tuple[str, float]]:
    """Apps ranked by total minutes, as (app, minutes) pairs"""
    totals: Dict[str, float] = defaultdict(float)
    for event in events:
        if event.app:
            totals[event.app] += event.duration_seconds / 60.0
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


class MultiTimeframeAggregator:
    """Builds per-timeframe snapshots of active window activity"""

    def __init__(
        self,
        fetcher: TimeRangeFetcher,
        interval_filter: Optional[ActiveIntervalFilter] = None,
    ):
        self.fetcher = fetcher
        self.interval_filter = interval_filter or ActiveIntervalFilter()

    async def collect(
        self, now: Optional[datetime] = None
    ) -> Dict[TimeframeKey, TimeframeSnapshot]:
        """
        Fetch the widest timeframe once and derive all snapshots from it

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            Snapshot per TimeframeKey

        Raises:
            TrackingServiceError, BucketNotFoundError: From the fetcher
        """
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        widest_start = timeframe_start(TimeframeKey.TODAY, now)

        raw = await self.fetcher.fetch_range(widest_start, now, now=now)
        active_events = sort_chronologically(
            self.interval_filter.apply(raw["window"], raw["idle"])
        )
        idle_events = sort_chronologically(raw["idle"])

        snapshots: Dict[TimeframeKey, TimeframeSnapshot] = {}
        for key in TimeframeKey:
            start = timeframe_start(key, now)
            window_events = [event for event in active_events if event.timestamp >= start]
            snapshots[key] = TimeframeSnapshot(
                key=key,
                start=start,
                end=now,
                window_events=window_events,
                idle_events=[event for event in idle_events if event.timestamp >= start],
                stats=compute_stats(window_events),
            )

        logger.debug(
            "Timeframes collected: "
            + ", ".join(
                f"{key.value}={snapshot.stats.event_count}"
                for key, snapshot in snapshots.items()
            )
        )
        return snapshots
