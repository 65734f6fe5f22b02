"""
Event sending manager
Used to send event notifications from the backend to the UI collaborator,
which registers a handler at startup
"""

from typing import Any, Callable, Dict, List

from pydantic import RootModel

from companion_backend.models.analysis import SummaryRecord

from .logger import get_logger

logger = get_logger(__name__)

EmitHandler = Callable[[str, Dict[str, Any]], Any]

_handlers: List[EmitHandler] = []


class _RawEventPayload(RootModel[Dict[str, Any]]):
    """Wraps event payload for JSON serialization"""


def register_emit_handler(handler: EmitHandler) -> None:
    """Register a callable receiving (event_name, payload)"""
    if handler not in _handlers:
        _handlers.append(handler)
        logger.debug(f"Registered emit handler: {getattr(handler, '__name__', handler)}")


def unregister_emit_handler(handler: EmitHandler) -> None:
    if handler in _handlers:
        _handlers.remove(handler)


def clear_emit_handlers() -> None:
    _handlers.clear()


def _emit(event_name: str, payload: Dict[str, Any]) -> bool:
    """Send an event to every registered handler"""
    if not _handlers:
        logger.debug(f"[events] No handler registered, skipping event: {event_name}")
        return False

    serialized = _RawEventPayload(payload).model_dump(mode="json")
    delivered = False
    for handler in list(_handlers):
        try:
            handler(event_name, serialized)
            delivered = True
        except Exception as exc:
            logger.error(f"❌ [events] Event sending failed: {event_name} : {exc}", exc_info=True)
    return delivered


def emit_summary_updated(record: SummaryRecord) -> bool:
    """
    Send "summary updated" event

    Args:
        record: The summary just produced

    Returns:
        True if at least one handler received it
    """
    payload = {
        "type": "summary_updated",
        "data": record.model_dump(mode="json"),
        "timestamp": record.created_at.isoformat(),
    }
    return _emit("summary_updated", payload)


def emit_log_message(level: str, message: str) -> bool:
    """Send an operational message for the UI log view"""
    return _emit("log_message", {"type": "log_message", "level": level, "message": message})


def emit_notification(title: str, body: str) -> bool:
    return _emit("show_notification", {"type": "show_notification", "title": title, "body": body})


def emit_mode_changed(mode: str, previous: str) -> bool:
    return _emit("mode_changed", {"type": "mode_changed", "mode": mode, "previous": previous})


def emit_coach_todos(todos: List[str]) -> bool:
    return _emit("coach_todos_updated", {"type": "coach_todos_updated", "todos": todos})
