"""
Perception layer
Reads activity from the tracking service and keeps only active time
"""

from .activity_watch import TimeRangeFetcher, find_bucket, format_timestamp
from .interval_filter import ActiveIntervalFilter, merge_intervals

__all__ = [
    "ActiveIntervalFilter",
    "TimeRangeFetcher",
    "find_bucket",
    "format_timestamp",
    "merge_intervals",
]
