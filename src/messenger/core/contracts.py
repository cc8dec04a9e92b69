# src/messenger/core/contracts.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

__all__ = [
    "Handler",
    "Subscription",
    "InvalidArgument",
]


# --------- Primitive / aliases ---------
Handler = Callable[[Any], Any]


# --------- Errors ---------
class InvalidArgument(TypeError, ValueError):
    """Bad topic or handler passed to a registry operation."""


# --------- Records ---------
@dataclass(frozen=True, eq=False, slots=True)
class Subscription:
    """One (topic, handler) pairing held by a Registry."""
    topic: str
    handler: Handler

    def matches(self, topic: str, handler: Handler | None = None) -> bool:
        # handler is compared by identity, never by value
        if self.topic != topic:
            return False
        return handler is None or self.handler is handler

    @property
    def handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)
