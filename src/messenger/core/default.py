# src/messenger/core/default.py
"""Process-wide default Registry for callers that don't want to hold one.

    from messenger.core import default
    default.register("login", on_login)
    default.dispatch("login", user)

Explicit ``Registry`` instances never share state with this one.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from messenger.core.contracts import Handler
from messenger.core.registry import Registry

DEFAULT_NAME = "messenger.default"

_default: Optional[Registry] = None
_lock = threading.Lock()


def get_default() -> Registry:
    global _default
    with _lock:
        if _default is None:
            _default = Registry(DEFAULT_NAME)
        return _default


def reset_default() -> Registry:
    """Swap in a fresh default registry and return it."""
    global _default
    with _lock:
        _default = Registry(DEFAULT_NAME)
        return _default


def register(topic: str, handler: Handler) -> Registry:
    return get_default().register(topic, handler)


def deregister(topic: str, handler: Optional[Handler] = None) -> Registry:
    return get_default().deregister(topic, handler)


def dispatch(topic: str, payload: Any = None) -> bool:
    return get_default().dispatch(topic, payload)


def handler(topic: str) -> Callable[[Handler], Handler]:
    return get_default().handler(topic)
