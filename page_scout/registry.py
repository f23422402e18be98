# File: page_scout/registry.py
"""page_scout.registry: subscription registry for scan lifecycle events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from page_scout.logger import log_swallowed

__all__ = ["Subscriber", "SubscriptionRegistry", "EVENT_HOOKS"]

#: lifecycle event -> subscriber hook attribute
EVENT_HOOKS: Dict[str, str] = {
    "scanComplete": "on_scan_complete",
    "scanError": "on_scan_error",
    "runtimeUpdate": "on_update",
    "runtimeComplete": "on_complete",
}


@dataclass(eq=False)
class Subscriber:
    """Bundle of optional hooks. Identity-hashed, so the same bundle can be unsubscribed later."""

    on_update: Optional[Callable[..., Any]] = None
    on_complete: Optional[Callable[..., Any]] = None
    on_scan_complete: Optional[Callable[..., Any]] = None
    on_scan_error: Optional[Callable[..., Any]] = None


class SubscriptionRegistry:
    """Ordered set of subscribers.

    Any object exposing some of the ``on_*`` hooks can subscribe; hooks it
    lacks are skipped. Delivery iterates over a snapshot, so subscribing or
    unsubscribing from inside a hook only affects later events.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[int, Any] = {}

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, subscriber: object) -> bool:
        return id(subscriber) in self._subscribers

    def subscribe(self, subscriber: Any) -> Callable[[], None]:
        """Registers *subscriber* (idempotent) and returns its unsubscribe function."""
        self._subscribers.setdefault(id(subscriber), subscriber)
        return lambda: self.unsubscribe(subscriber)

    def unsubscribe(self, subscriber: Any) -> None:
        self._subscribers.pop(id(subscriber), None)

    def emit(self, event: str, *args: Any) -> int:
        """Calls the hook matching *event* on every subscriber; returns how many were called.

        A raising hook is logged and does not stop delivery to the others.
        """
        hook_name = EVENT_HOOKS[event]
        delivered = 0
        for subscriber in list(self._subscribers.values()):
            hook = getattr(subscriber, hook_name, None)
            if hook is None:
                continue
            try:
                hook(*args)
            except Exception as exc:
                log_swallowed(exc, f"{hook_name}({event})", level=logging.ERROR)
                continue
            delivered += 1
        return delivered
