"""Synchronous publish/subscribe for room lifecycle notifications.

Handlers run on the publishing thread, in subscription order.  A failing
handler is logged with its traceback and the remaining handlers still run.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RoomsScanned:
    rooms: tuple


@dataclass(frozen=True)
class RoomAdded:
    room: Any


@dataclass(frozen=True)
class RoomRemoved:
    room: Any


@dataclass(frozen=True)
class FloorChanged:
    source: str
    floor: int


@dataclass(frozen=True)
class RoomOccupied:
    room: Any
    occupant: Any = None


@dataclass(frozen=True)
class RoomReleased:
    room: Any
    occupant: Any = None


Handler = Callable[[Any], None]


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

class Subscription:
    """Handle returned by EventBus.subscribe."""

    def __init__(self, bus: "EventBus", event_type: type, handler: Handler):
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._bus._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class EventBus:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[type, list[Subscription]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> Subscription:
        sub = Subscription(self, event_type, handler)
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(sub)
        return sub

    def publish(self, event) -> int:
        """Deliver *event* to its subscribers; returns how many were called."""
        with self._lock:
            subs = list(self._subscribers.get(type(event), ()))

        delivered = 0
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.handler(event)
            except Exception:
                log.exception(f"Handler {sub.handler!r} failed on {type(event).__name__}")
            delivered += 1
        return delivered

    def subscriber_count(self, event_type: type) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, ()))

    def clear(self) -> None:
        with self._lock:
            subs = [s for group in self._subscribers.values() for s in group]
            self._subscribers.clear()
        for sub in subs:
            sub.active = False

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            group = self._subscribers.get(sub.event_type)
            if group and sub in group:
                group.remove(sub)
