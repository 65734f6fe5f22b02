"""
ActivityWatch client
Reads window-focus and idle-state events for a time range from the local
tracking service
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from companion_backend.core.exceptions import BucketNotFoundError, TrackingServiceError
from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event, ensure_utc

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
WINDOW_BUCKET_PREFIX = "aw-watcher-window_"
AFK_BUCKET_PREFIX = "aw-watcher-afk_"


def format_timestamp(value: datetime) -> str:
    """Truncate to whole seconds and format as UTC ISO-8601"""
    return ensure_utc(value).replace(microsecond=0).strftime(TIMESTAMP_FORMAT)


def find_bucket(buckets: Dict[str, Any], prefix: str) -> str:
    """Return the first bucket id starting with prefix

    Raises:
        BucketNotFoundError: If no bucket matches
    """
    for bucket_id in sorted(buckets):
        if bucket_id.startswith(prefix):
            return bucket_id
    raise BucketNotFoundError(prefix)


class TimeRangeFetcher:
    """HTTP client for the tracking service's bucket/event API"""

    def __init__(
        self,
        base_url: str = "http://localhost:5600/api/0",
        timeout: float = 10.0,
        window_bucket_prefix: str = WINDOW_BUCKET_PREFIX,
        afk_bucket_prefix: str = AFK_BUCKET_PREFIX,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize fetcher

        Args:
            base_url: API root of the tracking service
            timeout: Per-request timeout in seconds
            window_bucket_prefix: Prefix identifying the window-focus bucket
            afk_bucket_prefix: Prefix identifying the idle-state bucket
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.window_bucket_prefix = window_bucket_prefix
        self.afk_bucket_prefix = afk_bucket_prefix
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config) -> "TimeRangeFetcher":
        """Build from a ConfigLoader ([activitywatch] section)"""
        host = config.get("activitywatch.host", "localhost")
        port = config.get("activitywatch.port", 5600)
        return cls(
            base_url=f"http://{host}:{port}/api/0",
            timeout=float(config.get("activitywatch.timeout", 10.0)),
            window_bucket_prefix=config.get(
                "activitywatch.window_bucket_prefix", WINDOW_BUCKET_PREFIX
            ),
            afk_bucket_prefix=config.get(
                "activitywatch.afk_bucket_prefix", AFK_BUCKET_PREFIX
            ),
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_buckets(self) -> Dict[str, Any]:
        """List buckets registered on the tracking service

        Raises:
            TrackingServiceError: If the service cannot be reached or answers
                with an error status
        """
        try:
            response = await self._get_client().get("/buckets/")
            response.raise_for_status()
            buckets = response.json()
        except httpx.HTTPError as e:
            raise TrackingServiceError(f"Failed to list buckets: {e}") from e
        except ValueError as e:
            raise TrackingServiceError(f"Malformed bucket listing: {e}") from e

        if not isinstance(buckets, dict):
            raise TrackingServiceError("Malformed bucket listing: expected an object")
        return buckets

    async def get_events(
        self,
        bucket_id: str,
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
    ) -> List[Event]:
        """
        Fetch events of one bucket within [start, end]

        End is clipped to the current time. Any service or transport error
        yields an empty list for this bucket.

        Args:
            bucket_id: Bucket to query
            start: Range start
            end: Range end, must be after start

        Returns:
            Events in the order the service returned them
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        if start >= end:
            raise ValueError("start must be before end")

        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        end = min(end, now)
        if start >= end:
            return []

        params = {"start": format_timestamp(start), "end": format_timestamp(end)}
        path = f"/buckets/{quote(bucket_id, safe='')}/events"

        try:
            response = await self._get_client().get(path, params=params)
        except httpx.TimeoutException:
            logger.warning(f"Timed out fetching events from {bucket_id}")
            return []
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch events from {bucket_id}: {e}")
            return []

        if response.status_code == 500:
            # The service answers 500 for ranges without data
            logger.debug(f"No data in {bucket_id} for {params['start']} - {params['end']}")
            return []
        if response.is_error:
            logger.warning(
                f"Tracking service returned {response.status_code} for {bucket_id}"
            )
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Malformed events payload from {bucket_id}")
            return []

        if not isinstance(payload, list):
            logger.warning(f"Unexpected events payload type from {bucket_id}")
            return []

        events: List[Event] = []
        skipped = 0
        for item in payload:
            try:
                events.append(Event.model_validate(item))
            except ValidationError:
                skipped += 1
        if skipped:
            logger.debug(f"Skipped {skipped} malformed events from {bucket_id}")

        return events

    async def fetch_range(
        self, start: datetime, end: datetime, now: Optional[datetime] = None
    ) -> Dict[str, List[Event]]:
        """
        Fetch window and idle events for a time range

        Returns:
            {"window": [...], "idle": [...]}

        Raises:
            TrackingServiceError: If buckets cannot be listed
            BucketNotFoundError: If either bucket is missing
        """
        buckets = await self.get_buckets()
        window_bucket = find_bucket(buckets, self.window_bucket_prefix)
        afk_bucket = find_bucket(buckets, self.afk_bucket_prefix)

        window_events, idle_events = await asyncio.gather(
            self.get_events(window_bucket, start, end, now=now),
            self.get_events(afk_bucket, start, end, now=now),
        )

        logger.debug(
            f"Fetched {len(window_events)} window and {len(idle_events)} idle events "
            f"({format_timestamp(start)} - {format_timestamp(end)})"
        )
        return {"window": window_events, "idle": idle_events}

    async def test_connection(self) -> Dict[str, Any]:
        """
        Check whether the tracking service is reachable

        Returns:
            Dict with 'available' (bool), 'latency_ms' (int), and optional
            'version' or 'error'
        """
        start_time = time.perf_counter()
        try:
            response = await self._get_client().get("/info")
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            if response.is_success:
                info = response.json() if response.content else {}
                return {
                    "available": True,
                    "latency_ms": latency_ms,
                    "version": info.get("version") if isinstance(info, dict) else None,
                }
            return {
                "available": False,
                "latency_ms": latency_ms,
                "error": f"HTTP {response.status_code}",
            }
        except (httpx.HTTPError, ValueError) as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(f"Tracking service connection check failed: {e}")
            return {"available": False, "latency_ms": latency_ms, "error": str(e)}
