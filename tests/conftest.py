"""
Shared fixtures for backend tests

- event factory producing tracking-service events
- fake tracking service backed by httpx.MockTransport
- temporary SQLite database
- in-memory config loader
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from companion_backend.core.db import DatabaseManager
from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.events import clear_emit_handlers, register_emit_handler
from companion_backend.models.activity import CategoryRecord, Event, TimeframeKey, TimeframeSnapshot
from companion_backend.models.analysis import AnalysisContext
from companion_backend.perception.activity_watch import TimeRangeFetcher
from companion_backend.processing.aggregator import compute_stats, timeframe_start
from companion_backend.processing.default_categories import lookup_default, normalize_app_name
from companion_backend.processing.pipeline import AnalysisPipeline

WINDOW_BUCKET = "aw-watcher-window_testhost"
AFK_BUCKET = "aw-watcher-afk_testhost"

NOW = datetime(2026, 3, 10, 14, 0, 0, tzinfo=timezone.utc)


def make_event(
    start: datetime,
    seconds: float,
    app: Optional[str] = None,
    title: str = "",
    status: Optional[str] = None,
) -> Event:
    data: Dict[str, Any] = {}
    if app is not None:
        data["app"] = app
        data["title"] = title
    if status is not None:
        data["status"] = status
    return Event(timestamp=start, duration=seconds, data=data)


def wire(event: Event) -> Dict[str, Any]:
    """Event in the tracking service's JSON shape"""
    return {
        "timestamp": event.timestamp.isoformat(),
        "duration": event.duration_seconds,
        "data": event.attributes,
    }


class FakeTrackingService:
    """Serves bucket listings and events like the tracking service"""

    def __init__(
        self,
        window: Optional[List[Event]] = None,
        idle: Optional[List[Event]] = None,
        buckets: Optional[List[str]] = None,
    ):
        self.window = window or []
        self.idle = idle or []
        self.buckets = buckets if buckets is not None else [WINDOW_BUCKET, AFK_BUCKET]
        self.requests: List[httpx.Request] = []
        self.event_status = 200
        self.fail_buckets = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/info"):
            return httpx.Response(200, json={"hostname": "testhost", "version": "v0.12.2"})

        if path.endswith("/buckets/"):
            if self.fail_buckets:
                return httpx.Response(503)
            return httpx.Response(200, json={name: {"id": name} for name in self.buckets})

        if path.endswith("/events"):
            if self.event_status != 200:
                return httpx.Response(self.event_status)
            source = self.window if WINDOW_BUCKET in path else self.idle
            return httpx.Response(200, content=json.dumps([wire(event) for event in source]))

        return httpx.Response(404)

    def fetcher(self) -> TimeRangeFetcher:
        return TimeRangeFetcher(transport=httpx.MockTransport(self.handler))


class StaticConfig:
    """ConfigLoader stand-in with dot-key lookup over a dict"""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._config = values or {}

    def get(self, key: str, default: Any = None) -> Any:
        value: Any = self._config
        try:
            for part in key.split("."):
                value = value[part]
            return value
        except (KeyError, TypeError):
            return default


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def event_factory() -> Callable[..., Event]:
    return make_event


@pytest.fixture
def minutes_ago(now) -> Callable[[float], datetime]:
    def _at(minutes: float) -> datetime:
        return now - timedelta(minutes=minutes)

    return _at


@pytest.fixture
def db(tmp_path) -> DatabaseManager:
    return DatabaseManager(tmp_path / "companion.db")


@pytest.fixture
def config() -> StaticConfig:
    return StaticConfig(
        {
            "llm": {"enabled": True, "model": "mistral"},
            "monitoring": {"tick_interval": 60},
            "analysis": {"scoring_timeframe": "30_minutes"},
            "categorization": {"enabled": True, "interval": 300, "batch_size": 10},
            "user": {
                "context": "I am a software developer.",
                "study_focus": "linear algebra",
                "coach_task": "ship the release",
                "default_mode": "coach",
            },
            "notifications": {
                "enabled": True,
                "chill_prompt": "Maybe take a look at your task list?",
                "study_prompt": "Back to the books!",
                "coach_prompt": "Check your todos.",
            },
        }
    )


@pytest.fixture
def emitted():
    """Captures emitted UI events as (name, payload) pairs"""
    captured: List[tuple] = []

    def _capture(name: str, payload: Dict[str, Any]) -> None:
        captured.append((name, payload))

    clear_emit_handlers()
    register_emit_handler(_capture)
    yield captured
    clear_emit_handlers()


def build_snapshots(events: List[Event], now: datetime = NOW) -> Dict[TimeframeKey, TimeframeSnapshot]:
    """Timeframe snapshots as the aggregator would derive them"""
    snapshots = {}
    for key in TimeframeKey:
        start = timeframe_start(key, now)
        window = [event for event in events if event.timestamp >= start]
        snapshots[key] = TimeframeSnapshot(
            key=key, start=start, end=now, window_events=window, stats=compute_stats(window)
        )
    return snapshots


def default_records(events: List[Event]) -> Dict[str, CategoryRecord]:
    """Category records from the built-in table, keyed by event app name"""
    records = {}
    for event in events:
        default = lookup_default(normalize_app_name(event.app))
        if default is not None:
            records[event.app] = CategoryRecord(
                app_name=normalize_app_name(event.app),
                category=default.category,
                subcategory=default.subcategory,
                productivity_score=default.productivity_score,
            )
    return records


def make_context(
    events: List[Event],
    user_context: str = "I am a software developer.",
    categories: Optional[Dict[str, CategoryRecord]] = None,
    now: datetime = NOW,
) -> AnalysisContext:
    pipeline = AnalysisPipeline(
        aggregator=None,
        resolver=None,
        evaluator=None,
        scoring_timeframe=TimeframeKey.THIRTY_MINUTES,
    )
    return pipeline.build_context(
        build_snapshots(events, now),
        default_records(events) if categories is None else categories,
        user_context,
        now,
    )


class FakeLLMManager:
    """LLMManager stand-in returning canned responses"""

    def __init__(self, responses: Optional[List[Any]] = None, available: bool = True):
        self.responses = list(responses or [])
        self.available = available
        self.prompts: List[str] = []
        self.closed = 0

    async def generate(self, prompt: str, system: str = "") -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMUnavailableError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def health_check(self) -> Dict[str, Any]:
        if self.available:
            return {"available": True, "latency_ms": 1, "model": "mistral"}
        return {"available": False, "latency_ms": 0, "error": "offline"}

    async def list_models(self) -> List[str]:
        return ["mistral"]

    def get_active_model_info(self) -> Dict[str, Any]:
        return {"model": "mistral", "base_url": "http://localhost:11434"}

    async def aclose(self) -> None:
        self.closed += 1
