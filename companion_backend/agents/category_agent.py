"""
CategorizationAgent - Background categorization of unknown applications
Asks the language model to categorize apps the resolver queued as pending
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.core.json_parser import parse_json_from_response
from companion_backend.core.logger import get_logger
from companion_backend.llm.manager import LLMManager, get_llm_manager
from companion_backend.llm.prompt_builder import CATEGORIZABLE, PromptBuilder
from companion_backend.models.activity import AppCategory
from companion_backend.processing.category_resolver import CategoryResolver
from companion_backend.processing.default_categories import normalize_app_name

logger = get_logger(__name__)

CATEGORIZATION_SYSTEM_PROMPT = (
    "You categorize desktop applications. Respond with valid JSON only."
)


class CategoryAssignment(BaseModel):
    """One generated category, validated before it is stored"""

    category: str = AppCategory.OTHER.value
    subcategory: Optional[str] = None
    productivity_score: int = 50

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> str:
        label = str(value or "").strip().lower()
        return label if label in CATEGORIZABLE else AppCategory.OTHER.value

    @field_validator("subcategory", mode="before")
    @classmethod
    def _clean_subcategory(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("productivity_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError):
            return 50
        return max(0, min(100, score))


def validate_assignments(
    app_names: List[str], payload: Dict[str, Any]
) -> Dict[str, Dict[str, Any]]:
    """
    Match a generated mapping against the requested apps

    Keys are compared by normalized name. An entry may be a bare category
    string. Apps missing from the mapping are left out.
    """
    by_key = {normalize_app_name(str(name)): entry for name, entry in payload.items()}

    assignments: Dict[str, Dict[str, Any]] = {}
    for app_name in app_names:
        entry = by_key.get(normalize_app_name(app_name))
        if entry is None:
            continue
        if isinstance(entry, str):
            entry = {"category": entry}
        if not isinstance(entry, dict):
            logger.debug(f"Ignoring malformed category entry for {app_name}: {entry!r}")
            continue
        try:
            assignment = CategoryAssignment.model_validate(entry)
        except ValidationError as e:
            logger.debug(f"Ignoring invalid category entry for {app_name}: {e}")
            continue
        assignments[app_name] = assignment.model_dump()
    return assignments


class CategorizationAgent:
    """
    Periodic categorization agent

    Every interval it takes a batch of pending apps, skips the pass when
    the model backend is unhealthy, and stores the validated results with
    origin auto. Apps that fail stay pending for the next pass.
    """

    def __init__(
        self,
        resolver: CategoryResolver,
        llm_manager: Optional[LLMManager] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        interval: int = 300,
        batch_size: int = 10,
    ):
        """
        Initialize CategorizationAgent

        Args:
            resolver: Category resolver holding the pending queue
            llm_manager: LLM manager (global instance when omitted)
            prompt_builder: Builds the categorization prompt
            interval: How often to run a pass (seconds, default 5min)
            batch_size: Maximum apps per pass
        """
        self.resolver = resolver
        self.llm_manager = llm_manager or get_llm_manager()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.interval = interval
        self.batch_size = batch_size

        # Running state
        self.is_running = False
        self.is_paused = False
        self.categorization_task: Optional[asyncio.Task] = None

        # Statistics
        self.stats: Dict[str, Any] = {
            "apps_categorized": 0,
            "passes": 0,
            "skipped_unhealthy": 0,
            "failures": 0,
            "requeued": 0,
            "last_run_time": None,
        }

        logger.debug(
            f"CategorizationAgent initialized (interval: {interval}s, batch: {batch_size})"
        )

    async def start(self):
        """Start the categorization agent"""
        if self.is_running:
            logger.warning("CategorizationAgent is already running")
            return

        self.is_running = True
        self.categorization_task = asyncio.create_task(self._periodic_categorization())

        logger.info(f"CategorizationAgent started (interval: {self.interval}s)")

    async def stop(self):
        """Stop the categorization agent"""
        if not self.is_running:
            return

        self.is_running = False
        self.is_paused = False

        if self.categorization_task:
            self.categorization_task.cancel()
            try:
                await self.categorization_task
            except asyncio.CancelledError:
                pass
            self.categorization_task = None

        logger.info("CategorizationAgent stopped")

    def pause(self):
        if not self.is_running:
            return
        self.is_paused = True
        logger.debug("CategorizationAgent paused")

    def resume(self):
        if not self.is_running:
            return
        self.is_paused = False
        logger.debug("CategorizationAgent resumed")

    async def _periodic_categorization(self):
        """Scheduled task: categorize pending apps every N seconds"""
        while self.is_running:
            try:
                await asyncio.sleep(self.interval)

                if self.is_paused:
                    logger.debug("CategorizationAgent paused, skipping pass")
                    continue

                await self.categorize_pending()
            except asyncio.CancelledError:
                logger.debug("Categorization task cancelled")
                break
            except Exception as e:
                logger.error(f"Categorization task exception: {e}", exc_info=True)

    async def categorize_pending(self) -> int:
        """
        Run one categorization pass

        Returns:
            Number of apps categorized
        """
        apps = self.resolver.pending_batch(self.batch_size)
        if not apps:
            logger.debug("No pending apps to categorize")
            return 0

        self.stats["passes"] += 1
        self.stats["last_run_time"] = datetime.now()

        health = await self.llm_manager.health_check()
        if not health.get("available"):
            self.stats["skipped_unhealthy"] += 1
            logger.debug(
                f"Skipping categorization of {len(apps)} apps: {health.get('error', 'backend unavailable')}"
            )
            return 0

        try:
            return await self._request_categories(apps)
        finally:
            # Apps the model skipped go behind the rest of the queue
            self.stats["requeued"] += self.resolver.requeue(apps)

    async def _request_categories(self, apps: List[str]) -> int:
        prompt = self.prompt_builder.build_categorization_prompt(apps)
        try:
            response = await self.llm_manager.generate(
                prompt, system=CATEGORIZATION_SYSTEM_PROMPT
            )
        except LLMUnavailableError as e:
            self.stats["failures"] += 1
            logger.warning(f"Categorization request failed: {e}")
            return 0

        payload = parse_json_from_response(response)
        if not isinstance(payload, dict):
            self.stats["failures"] += 1
            logger.warning("Categorization response was not a JSON object")
            return 0

        assignments = validate_assignments(apps, payload)
        if not assignments:
            logger.debug("Categorization response matched none of the pending apps")
            return 0

        applied = await self.resolver.apply_auto_categories(assignments)
        self.stats["apps_categorized"] += applied
        logger.debug(f"Categorization pass: {applied}/{len(apps)} apps categorized")
        return applied

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics information"""
        return {
            **self.stats,
            "pending": self.resolver.pending_count,
            "is_running": self.is_running,
        }
