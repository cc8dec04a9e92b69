# src/messenger/core/registry.py
from __future__ import annotations

import threading
from contextlib import nullcontext
from typing import Any, Callable, List, Optional

from messenger.core import log
from messenger.core.contracts import Handler, InvalidArgument, Subscription
from messenger.core.metrics import Timer, gauge_set, inc


def _check_topic(op: str, topic: Any, *, allow_empty: bool = True) -> None:
    if not isinstance(topic, str):
        raise InvalidArgument(f"first parameter of Registry.{op} must be a str, got {type(topic).__name__}")
    if not allow_empty and not topic:
        raise InvalidArgument(f"first parameter of Registry.{op} must not be empty")


def _check_handler(op: str, handler: Any) -> None:
    if not callable(handler):
        raise InvalidArgument(f"second parameter of Registry.{op} must be callable, got {type(handler).__name__}")


class Registry:
    """
    Ordered topic -> handler subscriptions with synchronous dispatch.

    - register/deregister return the registry itself so calls can be chained
    - dispatch returns True when at least one handler ran
    - one RLock guards every operation; handlers run while it is held, so a
      handler may register/deregister on the same thread, and the change is
      seen by the next dispatch
    """

    def __init__(self, name: str = "messenger.registry", *, metrics: bool = True):
        self.name = name
        self.metrics = metrics
        self.l = log.get(self.name)
        self._subs: List[Subscription] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    def __repr__(self) -> str:
        return f"Registry(name={self.name!r}, subscriptions={len(self)})"

    def _count(self, topic: str) -> int:
        return sum(1 for s in self._subs if s.topic == topic)

    def _track_subscribers(self, topic: str) -> None:
        if self.metrics:
            gauge_set("messenger_subscribers", float(self._count(topic)), registry=self.name, topic=topic)

    # -------------------- operations --------------------
    def register(self, topic: str, handler: Handler) -> "Registry":
        _check_topic("register", topic, allow_empty=False)
        _check_handler("register", handler)

        sub = Subscription(topic, handler)
        with self._lock:
            self._subs.append(sub)
            if self.metrics:
                inc("messenger_register_total", 1, registry=self.name, topic=topic)
            self._track_subscribers(topic)
        self.l.debug("registered topic=%s handler=%s", topic, sub.handler_name)
        return self

    def deregister(self, topic: str, handler: Optional[Handler] = None) -> "Registry":
        _check_topic("deregister", topic)
        if handler is not None:
            _check_handler("deregister", handler)

        with self._lock:
            kept = [s for s in self._subs if not s.matches(topic, handler)]
            removed = len(self._subs) - len(kept)
            self._subs = kept
            if removed:
                if self.metrics:
                    inc("messenger_deregister_total", float(removed), registry=self.name, topic=topic)
                self._track_subscribers(topic)
        self.l.debug("deregistered topic=%s removed=%d", topic, removed)
        return self

    def dispatch(self, topic: str, payload: Any = None) -> bool:
        _check_topic("dispatch", topic)

        delivered = 0
        with self._lock:
            snapshot = [s for s in self._subs if s.topic == topic]
            if not snapshot:
                # one series per registry, unsubscribed topic names are unbounded
                if self.metrics:
                    inc("messenger_dispatch_miss_total", 1, registry=self.name)
                self.l.debug("dispatch topic=%s: no subscribers", topic)
                return False

            if self.metrics:
                inc("messenger_dispatch_total", 1, registry=self.name, topic=topic)
            with Timer("messenger_dispatch_ms", registry=self.name, topic=topic) if self.metrics else nullcontext():
                for sub in snapshot:
                    fn = sub.handler
                    if not callable(fn):
                        continue
                    try:
                        fn(payload)
                    except Exception:
                        self.l.error("handler failed topic=%s handler=%s", topic, sub.handler_name, exc_info=True)
                        raise
                    delivered += 1
                    if self.metrics:
                        inc("messenger_deliver_total", 1, registry=self.name, topic=topic)

        self.l.debug("dispatch topic=%s delivered=%d", topic, delivered)
        return delivered > 0

    # -------------------- helpers --------------------
    def handler(self, topic: str) -> Callable[[Handler], Handler]:
        """Decorator form of register; the function is returned unchanged."""
        _check_topic("handler", topic, allow_empty=False)

        def wrap(fn: Handler) -> Handler:
            self.register(topic, fn)
            return fn
        return wrap

    def subscriptions(self, topic: Optional[str] = None) -> List[Subscription]:
        """Copy of the subscription list, optionally only one topic."""
        if topic is not None:
            _check_topic("subscriptions", topic)
        with self._lock:
            return [s for s in self._subs if topic is None or s.topic == topic]

    def topics(self) -> List[str]:
        """Distinct topics in first-registration order."""
        with self._lock:
            return list(dict.fromkeys(s.topic for s in self._subs))
