"""
Tests for UI event delivery
"""

from companion_backend.core.events import (
    clear_emit_handlers,
    emit_log_message,
    emit_notification,
    register_emit_handler,
    unregister_emit_handler,
)


def test_emit_without_handler():
    clear_emit_handlers()
    assert emit_log_message("info", "nobody listening") is False


def test_failing_handler_does_not_block_others(emitted):
    def broken(name, payload):
        raise RuntimeError("window closed")

    register_emit_handler(broken)
    try:
        assert emit_notification("Coach Check-in", "Check your todos.") is True
    finally:
        unregister_emit_handler(broken)

    assert emitted == [
        (
            "show_notification",
            {"type": "show_notification", "title": "Coach Check-in", "body": "Check your todos."},
        )
    ]


def test_handler_registered_once(emitted):
    seen = []

    def listener(name, payload):
        seen.append(name)

    register_emit_handler(listener)
    register_emit_handler(listener)
    try:
        emit_log_message("warn", "ActivityWatch unreachable")
    finally:
        unregister_emit_handler(listener)

    assert seen == ["log_message"]
    assert len(emitted) == 1
