"""
Backend coordinator
Owns the analysis components and runs the periodic tick loop that fires the
current mode's summary when it is due
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from companion_backend.models.activity import Mode, TimeframeKey
from companion_backend.models.analysis import SummaryRecord

from .events import emit_mode_changed
from .logger import get_logger

logger = get_logger(__name__)

# Global coordinator instance
_coordinator: Optional["AnalysisCoordinator"] = None


def _timeframe(value: Any, default: TimeframeKey) -> TimeframeKey:
    try:
        return TimeframeKey(str(value))
    except ValueError:
        logger.warning(f"Unknown timeframe '{value}', using {default.value}")
        return default


class AnalysisCoordinator:
    """Analysis coordinator"""

    def __init__(self, config=None, db=None, fetcher=None, llm_manager=None):
        """
        Initialize coordinator

        Args:
            config: ConfigLoader instance (global one when omitted)
            db: DatabaseManager instance (global one when omitted)
            fetcher: Tracking service client (built from config when omitted)
            llm_manager: LLM manager (global one when omitted)
        """
        if config is None:
            from companion_backend.config.loader import get_config

            config = get_config()
        self.config = config
        self.tick_interval = float(config.get("monitoring.tick_interval", 60))

        self._db = db
        self._fetcher = fetcher
        self._llm_manager = llm_manager

        # Initialized lazily
        self.settings = None
        self.fetcher = None
        self.llm_manager = None
        self.resolver = None
        self.pipeline = None
        self.state = None
        self.scheduler = None
        self.handlers = None
        self.category_agent = None

        # Running state
        self.is_running = False
        self.is_paused = False
        self.tick_task: Optional[asyncio.Task] = None
        self.mode: str = "stopped"  # running | stopped | starting | error
        self.last_error: Optional[str] = None

        # Statistics
        self.stats: Dict[str, Any] = {
            "start_time": None,
            "ticks": 0,
            "summaries": 0,
            "skipped_ticks": 0,
            "last_summary_time": None,
        }

    def _set_state(self, *, mode: str, error: Optional[str] = None) -> None:
        """Update coordinator state fields"""
        self.mode = mode
        self.last_error = error
        if error:
            logger.debug("Coordinator state updated: mode=%s, error=%s", mode, error)
        else:
            logger.debug("Coordinator state updated: mode=%s", mode)

    def _init_components(self) -> None:
        """Lazy initialization of components"""
        if self.handlers is not None:
            return

        from companion_backend.agents.category_agent import CategorizationAgent
        from companion_backend.core.db import get_db
        from companion_backend.llm.focus_evaluator import FocusEvaluator
        from companion_backend.llm.manager import LLMManager
        from companion_backend.llm.prompt_builder import PromptBuilder
        from companion_backend.llm.response_parser import ResponseParser
        from companion_backend.perception.activity_watch import TimeRangeFetcher
        from companion_backend.perception.interval_filter import ActiveIntervalFilter
        from companion_backend.processing.aggregator import MultiTimeframeAggregator
        from companion_backend.processing.behavior_analyzer import BehaviorAnalyzer
        from companion_backend.processing.category_resolver import CategoryResolver
        from companion_backend.processing.pipeline import AnalysisPipeline

        from .mode_handlers import ModeHandlers
        from .scheduler import ModeScheduler
        from .settings import SettingsManager
        from .state import AppState

        config = self.config
        db = self._db or get_db()
        self._db = db

        self.settings = SettingsManager(config, db)
        self.fetcher = self._fetcher or TimeRangeFetcher.from_config(config)
        self.llm_manager = self._llm_manager or LLMManager(config=config)
        self.resolver = CategoryResolver(db.app_categories)

        prompt_builder = PromptBuilder(
            timeline_limit=int(config.get("analysis.timeline_limit", 20)),
            switch_limit=int(config.get("analysis.switch_limit", 30)),
        )
        evaluator = FocusEvaluator(self.llm_manager, prompt_builder, ResponseParser())

        self.pipeline = AnalysisPipeline(
            aggregator=MultiTimeframeAggregator(self.fetcher, ActiveIntervalFilter()),
            resolver=self.resolver,
            evaluator=evaluator,
            behavior_analyzer=BehaviorAnalyzer(
                session_gap_seconds=float(config.get("analysis.session_gap_seconds", 300))
            ),
            scoring_timeframe=_timeframe(
                config.get("analysis.scoring_timeframe", "5_minutes"), TimeframeKey.FIVE_MINUTES
            ),
            timeline_timeframe=_timeframe(
                config.get("analysis.timeline_timeframe", "30_minutes"),
                TimeframeKey.THIRTY_MINUTES,
            ),
            pattern_timeframe=_timeframe(
                config.get("analysis.pattern_timeframe", "today"), TimeframeKey.TODAY
            ),
        )

        self.state = AppState(self.settings.get_current_mode())
        self.scheduler = ModeScheduler(self.state)
        self.handlers = ModeHandlers(self.pipeline, self.state, self.settings, db.summaries)

        if config.get("categorization.enabled", True):
            self.category_agent = CategorizationAgent(
                self.resolver,
                llm_manager=self.llm_manager,
                prompt_builder=prompt_builder,
                interval=int(config.get("categorization.interval", 300)),
                batch_size=int(config.get("categorization.batch_size", 10)),
            )

        logger.debug("✓ Coordinator components initialized")

    def ensure_components_initialized(self) -> None:
        """Exposed initialization entry point"""
        self._init_components()

    async def start(self) -> None:
        """Start the tick loop and the categorization agent"""
        if self.is_running:
            logger.warning("Coordinator is already running")
            return

        try:
            self._set_state(mode="starting", error=None)
            logger.info("Starting analysis coordinator...")

            self._init_components()

            loaded = await self.resolver.load()
            logger.debug(f"Loaded {loaded} stored app categories")

            if self.category_agent:
                await self.category_agent.start()

            self.is_running = True
            self._set_state(mode="running", error=None)
            self.tick_task = asyncio.create_task(self._tick_loop())
            self.stats["start_time"] = datetime.now()

            current = await self.state.get_mode()
            logger.info(
                f"Analysis coordinator started, mode: {current.value}, "
                f"tick interval: {self.tick_interval:.0f} seconds"
            )

        except Exception as e:
            logger.error(f"Failed to start coordinator: {e}", exc_info=True)
            await self.stop()
            self._set_state(mode="error", error=str(e))
            raise

    async def stop(self, *, quiet: bool = False) -> None:
        """Stop the tick loop and the categorization agent

        Args:
            quiet: When True, only log debug messages
        """
        log = logger.debug if quiet else logger.info
        try:
            if self.is_running:
                log("Stopping analysis coordinator...")

            self.is_running = False
            if self.tick_task and not self.tick_task.done():
                self.tick_task.cancel()
                try:
                    await self.tick_task
                except asyncio.CancelledError:
                    pass
            self.tick_task = None

            if self.category_agent:
                await self.category_agent.stop()

            if self.fetcher is not None:
                await self.fetcher.aclose()

            if self.llm_manager is not None:
                await self.llm_manager.aclose()

            log("Analysis coordinator stopped")

        except Exception as e:
            logger.error(f"Failed to stop coordinator: {e}", exc_info=True)
        finally:
            self._set_state(mode="stopped", error=None)
            self.is_running = False
            self.is_paused = False
            self.tick_task = None

    def pause(self) -> None:
        """Pause ticks and the agent (system sleep)"""
        if not self.is_running:
            return
        self.is_paused = True
        if self.category_agent:
            self.category_agent.pause()
        logger.debug("Coordinator paused")

    def resume(self) -> None:
        if not self.is_running or not self.is_paused:
            return
        self.is_paused = False
        if self.category_agent:
            self.category_agent.resume()
        logger.debug("Coordinator resumed")

    async def _tick_loop(self) -> None:
        """Periodic tick loop; a late wake-up runs one tick and realigns"""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        try:
            while self.is_running:
                delay = next_tick - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)

                if not self.is_running:
                    break

                if self.is_paused:
                    logger.debug("Coordinator paused, skipping tick")
                else:
                    try:
                        await self.tick()
                    except Exception as e:
                        logger.error(f"Tick failed: {e}", exc_info=True)

                next_tick += self.tick_interval
                behind = loop.time() - next_tick
                if behind >= 0:
                    missed = int(behind // self.tick_interval) + 1
                    self.stats["skipped_ticks"] += missed
                    next_tick += missed * self.tick_interval
                    logger.debug(f"Skipped {missed} missed tick(s)")

        except asyncio.CancelledError:
            logger.debug("Tick loop cancelled")
        except Exception as e:
            logger.error(f"Tick loop failed: {e}", exc_info=True)
            self._set_state(mode="error", error=str(e))

    async def tick(self, now: Optional[datetime] = None) -> Optional[SummaryRecord]:
        """
        Run the current mode if its schedule is due

        Args:
            now: Local reference time

        Returns:
            The published summary, or None
        """
        self._init_components()
        now = now or datetime.now().astimezone()
        self.stats["ticks"] += 1

        mode = await self.state.get_mode()
        if not await self.scheduler.should_run(mode, now):
            return None

        await self.scheduler.mark_run(mode, now)
        return await self._run_mode(mode, now)

    async def generate_summary_now(
        self, mode: Optional[Mode] = None, now: Optional[datetime] = None
    ) -> Optional[SummaryRecord]:
        """Run a mode immediately regardless of its schedule"""
        self._init_components()
        now = now or datetime.now().astimezone()
        mode = mode or await self.state.get_mode()
        await self.scheduler.mark_run(mode, now)
        return await self._run_mode(mode, now)

    async def _run_mode(self, mode: Mode, now: datetime) -> Optional[SummaryRecord]:
        record = await self.handlers.run(mode, now)
        if record is not None:
            self.stats["summaries"] += 1
            self.stats["last_summary_time"] = datetime.now()
        return record

    async def get_mode(self) -> Mode:
        self._init_components()
        return await self.state.get_mode()

    async def set_mode(self, mode: Mode) -> Mode:
        """
        Switch the current mode and persist it

        Returns:
            The previous mode
        """
        self._init_components()
        previous = await self.scheduler.switch_mode(mode)
        try:
            self.settings.save_current_mode(mode)
        except Exception as e:
            logger.error(f"Failed to persist mode {mode.value}: {e}", exc_info=True)
        emit_mode_changed(mode.value, previous.value)
        return previous

    async def get_latest_summary(self, mode: Optional[Mode] = None) -> Optional[SummaryRecord]:
        self._init_components()
        return await self.state.get_summary(mode)

    async def check_connections(self) -> Dict[str, Any]:
        """Reachability of the tracking service and the model backend"""
        self._init_components()
        activitywatch, llm = await asyncio.gather(
            self.fetcher.test_connection(), self.llm_manager.health_check()
        )
        return {"activitywatch": activitywatch, "llm": llm}

    def get_stats(self) -> Dict[str, Any]:
        """Get coordinator statistics"""
        return {
            "coordinator": {
                "is_running": self.is_running,
                "is_paused": self.is_paused,
                "status": self.mode,
                "last_error": self.last_error,
                "tick_interval": self.tick_interval,
                "start_time": self.stats["start_time"].isoformat()
                if self.stats["start_time"]
                else None,
                "ticks": self.stats["ticks"],
                "summaries": self.stats["summaries"],
                "skipped_ticks": self.stats["skipped_ticks"],
                "last_summary_time": self.stats["last_summary_time"].isoformat()
                if self.stats["last_summary_time"]
                else None,
            },
            "pipeline": dict(self.pipeline.stats) if self.pipeline else {},
            "category_agent": self.category_agent.get_stats() if self.category_agent else {},
        }


def get_coordinator() -> AnalysisCoordinator:
    """Get global coordinator singleton"""
    global _coordinator
    if _coordinator is None:
        _coordinator = AnalysisCoordinator()
    return _coordinator
