"""
Headless entry point: runs the coordinator until interrupted
Events the UI would receive are written to the log instead
"""

import asyncio
import sys
from typing import Any, Dict

from companion_backend.config.loader import get_config
from companion_backend.core.coordinator import get_coordinator
from companion_backend.core.events import register_emit_handler
from companion_backend.core.logger import get_logger, setup_logging

logger = get_logger("companion_backend.main")


def _log_event(event_name: str, payload: Dict[str, Any]) -> None:
    if event_name == "summary_updated":
        data = payload.get("data", {})
        logger.info(
            f"[{data.get('mode')}] {data.get('period')} "
            f"{data.get('current_state')} ({data.get('focus_score')}): {data.get('summary_text')}"
        )
    elif event_name == "show_notification":
        logger.info(f"Notification: {payload.get('title')} - {payload.get('body')}")
    else:
        logger.debug(f"Event {event_name}: {payload}")


async def run() -> None:
    coordinator = get_coordinator()
    await coordinator.start()
    try:
        while coordinator.is_running:
            await asyncio.sleep(1)
    finally:
        await coordinator.stop()


def main() -> int:
    config = get_config()
    setup_logging(config.get("logging", {}))
    register_emit_handler(_log_event)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception as e:
        logger.error(f"Companion backend failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
