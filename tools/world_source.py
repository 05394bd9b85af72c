"""World-side collaborators consumed by the scanner.

The scanner only ever talks to two interfaces:

- ObjectSource.get_objects(tag) -> [(handle, position)]
- Placement: active_floor(), is_floor_active(level), floor_level_of(y)

InMemoryWorld implements both for tests, the CLI and hosts that push their
object lists instead of being queried.  load_world() reads the JSON format
used by main.py.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, Optional, Protocol

from scanner.models import CATEGORIES, Handle, WorldObject
from tools.geometry import FloorScale, Vec3, as_vec3

log = logging.getLogger(__name__)


class ObjectSource(Protocol):
    def get_objects(self, tag: str) -> list[WorldObject]: ...


class Placement(Protocol):
    def active_floor(self) -> int: ...

    def is_floor_active(self, level: int) -> bool: ...

    def floor_level_of(self, y: float) -> int: ...


class InMemoryWorld:
    """Mutable object registry keyed by handle."""

    def __init__(
        self,
        objects: Optional[Iterable[tuple[Handle, str, object]]] = None,
        active_floor: int = 1,
        active_floors: Optional[Iterable[int]] = None,
        floor_scale: Optional[FloorScale] = None,
    ):
        self._lock = threading.Lock()
        self._objects: dict[Handle, tuple[str, Vec3]] = {}
        self._active_floor = active_floor
        self._active_floors = set(active_floors or (active_floor,))
        self._floor_scale = floor_scale or FloorScale()
        self.query_count = 0
        for handle, tag, position in objects or ():
            self.add(handle, tag, position)

    # === Mutation ===========================================================

    def add(self, handle: Handle, tag: str, position) -> Handle:
        if tag not in CATEGORIES:
            raise ValueError(f"Unknown tag '{tag}' (expected one of {CATEGORIES})")
        with self._lock:
            self._objects[handle] = (tag, as_vec3(position))
        return handle

    def remove(self, handle: Handle) -> bool:
        with self._lock:
            return self._objects.pop(handle, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._objects.clear()

    def set_active_floor(self, level: int) -> None:
        self._active_floor = level
        self._active_floors.add(level)

    def activate_floor(self, level: int) -> None:
        self._active_floors.add(level)

    # === ObjectSource =======================================================

    def get_objects(self, tag: str) -> list[WorldObject]:
        with self._lock:
            self.query_count += 1
            return [(h, pos) for h, (t, pos) in self._objects.items() if t == tag]

    # === Placement ==========================================================

    def active_floor(self) -> int:
        return self._active_floor

    def is_floor_active(self, level: int) -> bool:
        return level in self._active_floors

    def floor_level_of(self, y: float) -> int:
        return self._floor_scale.level_of(y)

    def items(self) -> list[tuple[Handle, str, Vec3]]:
        with self._lock:
            return [(h, t, pos) for h, (t, pos) in self._objects.items()]

    def __len__(self) -> int:
        return len(self._objects)


def load_world(path: str) -> InMemoryWorld:
    """Load a world description from JSON.

    Format::

        {"objects": [{"id": "w1", "tag": "Wall", "position": [0, 0, 1]}, ...],
         "active_floor": 1, "active_floors": [1, 2]}
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)

    world = InMemoryWorld(
        active_floor=int(data.get("active_floor", 1)),
        active_floors=data.get("active_floors"),
    )
    for i, entry in enumerate(data.get("objects", [])):
        handle = entry.get("id", f"obj_{i}")
        world.add(handle, entry["tag"], entry["position"])
    log.info(f"Loaded {len(world)} objects from {path}")
    return world
