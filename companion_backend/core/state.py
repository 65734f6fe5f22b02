"""
Shared application state
Current mode, per-mode last-run times and the latest summaries, each guarded
by its own lock
"""

import asyncio
from datetime import datetime
from typing import Dict, Optional

from companion_backend.models.activity import Mode
from companion_backend.models.analysis import SummaryRecord


class AppState:
    """State shared by the tick loop and the handler surface

    Each field has its own lock and no method holds more than one.
    """

    def __init__(self, initial_mode: Mode = Mode.COACH):
        self._mode = initial_mode
        self._mode_lock = asyncio.Lock()

        self._last_run: Dict[Mode, datetime] = {}
        self._last_run_lock = asyncio.Lock()

        self._summaries: Dict[Mode, SummaryRecord] = {}
        self._latest: Optional[SummaryRecord] = None
        self._summary_lock = asyncio.Lock()

    async def get_mode(self) -> Mode:
        async with self._mode_lock:
            return self._mode

    async def set_mode(self, mode: Mode) -> Mode:
        """Set the current mode; returns the previous one"""
        async with self._mode_lock:
            previous = self._mode
            self._mode = mode
            return previous

    async def get_last_run(self, mode: Mode) -> Optional[datetime]:
        async with self._last_run_lock:
            return self._last_run.get(mode)

    async def record_run(self, mode: Mode, when: datetime) -> None:
        async with self._last_run_lock:
            self._last_run[mode] = when

    async def clear_last_run(self, mode: Mode) -> None:
        async with self._last_run_lock:
            self._last_run.pop(mode, None)

    async def set_summary(self, record: SummaryRecord) -> None:
        async with self._summary_lock:
            self._summaries[record.mode] = record
            self._latest = record

    async def get_summary(self, mode: Optional[Mode] = None) -> Optional[SummaryRecord]:
        """Latest summary of a mode, or the latest of any mode"""
        async with self._summary_lock:
            if mode is None:
                return self._latest
            return self._summaries.get(mode)
