"""
Handler modules with automatic API registration
Every function decorated with @api_handler is reachable by name through
call_handler, which is what the UI bridge invokes
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from companion_backend.core.logger import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Global API handler registry
_handler_registry: Dict[str, Dict[str, Any]] = {}


def api_handler(
    body: Optional[Type] = None,
    method: str = "POST",
    tags: Optional[List[str]] = None,
    summary: Optional[str] = None,
):
    """
    API handler decorator

    @param body - Optional request model type for parameter validation
    @param method - Method name reported to the bridge
    @param tags - API tags
    @param summary - API summary
    """

    def decorator(func: F) -> F:
        func_name = getattr(func, "__name__", "unknown")
        func_module = getattr(func, "__module__", "")
        module_name = func_module.split(".")[-1] if func_module else "unknown"
        func_doc = getattr(func, "__doc__", None)

        _handler_registry[func_name] = {
            "func": func,
            "body": body,
            "method": method.upper(),
            "tags": tags or [module_name],
            "module": module_name,
            "summary": summary or (func_doc.split("\n")[0] if func_doc else func_name),
            "signature": inspect.signature(func),
        }

        # Registered as-is; no wrapper
        return func

    return decorator


def get_registered_handlers() -> Dict[str, Dict[str, Any]]:
    """
    Get registered handler information

    @returns Handler registry
    """
    return _handler_registry.copy()


async def call_handler(name: str, payload: Optional[Dict[str, Any]] = None) -> Any:
    """
    Invoke a registered handler by name

    @param name - Handler function name
    @param payload - Raw request body, validated against the handler's body model
    @returns The handler's response model
    @raises KeyError - If no handler has that name
    """
    info = _handler_registry.get(name)
    if info is None:
        raise KeyError(f"Unknown handler: {name}")

    func = info["func"]
    body = info.get("body")
    if body is None:
        return await func()

    request = body.model_validate(payload or {})
    logger.debug(f"Calling handler {name} from {info['module']}")
    return await func(request)


# Import all handler modules to trigger decorator registration
# ruff: noqa: E402
from . import categories, modes, system

__all__ = [
    "api_handler",
    "call_handler",
    "get_registered_handlers",
    "categories",
    "modes",
    "system",
]
