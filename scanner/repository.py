"""Authoritative store of recognised rooms.

update() reconciles a fresh scan with the stored set by room ID:
  - IDs only in the scan are added (RoomAdded)
  - IDs only in the store are torn down (RoomRemoved)
  - shared IDs take the new geometry but keep their occupancy

The dictionary swap happens under the repository lock; events are published
after the lock is released so handlers may query the repository freely.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from scanner.events import (
    EventBus,
    RoomAdded,
    RoomOccupied,
    RoomReleased,
    RoomRemoved,
    RoomsScanned,
)
from scanner.models import Region, Room, RoomStatistics
from scanner.room_factory import RoomFactory
from scanner.validator import RoomValidator
from tools.geometry import as_vec3

log = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    duplicates: int = 0


def _pick_winner(a: Room, b: Room) -> tuple[Room, Room]:
    """Larger footprint wins; ties go to the room with the smallest cell."""
    if a.size != b.size:
        return (a, b) if a.size > b.size else (b, a)
    return (a, b) if min(a.floor_cells) <= min(b.floor_cells) else (b, a)


class RoomRepository:
    def __init__(self, factory: RoomFactory, bus: Optional[EventBus] = None):
        self.factory = factory
        self.bus = bus or EventBus()
        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {}
        self._last_invalid: list[Region] = []

    # === Reconciliation ====================================================

    def update(
        self,
        rooms: Iterable[Room],
        invalid_regions: Optional[list[Region]] = None,
    ) -> UpdateResult:
        result = UpdateResult()
        incoming = self._dedupe(rooms, result)
        events: list = []

        with self._lock:
            old = self._rooms
            for room_id, room in incoming.items():
                previous = old.get(room_id)
                if previous is None:
                    result.added.append(room_id)
                    events.append(RoomAdded(room))
                else:
                    room.occupied = previous.occupied
                    room.occupant = previous.occupant
                    self.factory.teardown(previous)
                    result.kept.append(room_id)
                self.factory.spawn(room)

            for room_id in sorted(old.keys() - incoming.keys()):
                gone = old[room_id]
                self.factory.teardown(gone)
                result.removed.append(room_id)
                events.append(RoomRemoved(gone))

            self._rooms = dict(sorted(incoming.items()))
            self._last_invalid = list(invalid_regions or [])
            snapshot = tuple(self._rooms.values())

        for event in events:
            self.bus.publish(event)
        self.bus.publish(RoomsScanned(snapshot))

        log.info(
            f"Rooms updated: {len(snapshot)} total, {len(result.added)} added, "
            f"{len(result.removed)} removed, {len(result.kept)} kept"
        )
        return result

    def _dedupe(self, rooms: Iterable[Room], result: UpdateResult) -> dict[str, Room]:
        out: dict[str, Room] = {}
        for room in rooms:
            current = out.get(room.room_id)
            if current is None:
                out[room.room_id] = room
                continue
            winner, loser = _pick_winner(current, room)
            out[room.room_id] = winner
            self.factory.teardown(loser)
            result.duplicates += 1
            log.warning(
                f"Duplicate room ID {room.room_id}: kept {winner.size} cells, "
                f"dropped {loser.size} cells"
            )
        return out

    def clear(self) -> None:
        with self._lock:
            gone = list(self._rooms.values())
            self._rooms = {}
            self._last_invalid = []
            for room in gone:
                self.factory.teardown(room)
        for room in gone:
            self.bus.publish(RoomRemoved(room))
        log.info(f"Repository cleared ({len(gone)} rooms removed)")

    # === Queries ===========================================================

    def get_by_id(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    def get_at_position(self, position) -> Optional[Room]:
        """Room whose bounds contain *position*; the smallest one if nested."""
        p = as_vec3(position)
        with self._lock:
            hits = [r for r in self._rooms.values() if r.bounds.contains(p)]
        if not hits:
            return None
        return min(hits, key=lambda r: (r.size, r.room_id))

    def get_by_floor(self, level: int) -> list[Room]:
        with self._lock:
            return [r for r in self._rooms.values() if r.floor_level == level]

    def get_available(self) -> list[Room]:
        with self._lock:
            return [r for r in self._rooms.values() if r.is_valid and not r.occupied]

    def get_all(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def get_by_price_range(self, low: float, high: float) -> list[Room]:
        with self._lock:
            return [r for r in self._rooms.values() if low <= r.price <= high]

    def get_by_reputation_range(self, low: float, high: float) -> list[Room]:
        with self._lock:
            return [r for r in self._rooms.values() if low <= r.reputation <= high]

    def get_top_quality(self, count: int = 5) -> list[Room]:
        with self._lock:
            rooms = list(self._rooms.values())
        return sorted(rooms, key=lambda r: (-RoomValidator.quality_score(r), r.room_id))[:count]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    # === Occupancy =========================================================

    def occupy(self, room_id: str, occupant: Any = None) -> bool:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not room.is_valid or room.occupied:
                return False
            room.occupied = True
            room.occupant = occupant
        self.bus.publish(RoomOccupied(room, occupant))
        log.debug(f"{room_id} occupied by {occupant!r}")
        return True

    def release(self, room_id: str) -> bool:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not room.occupied:
                return False
            occupant = room.occupant
            room.occupied = False
            room.occupant = None
        self.bus.publish(RoomReleased(room, occupant))
        log.debug(f"{room_id} released by {occupant!r}")
        return True

    def claim_available(
        self,
        occupant: Any,
        floor: Optional[int] = None,
        near=None,
    ) -> Optional[Room]:
        """Pick and occupy a free room in one step.

        With *near*, the room whose center is closest wins; otherwise the
        highest quality score.  Returns None when nothing is free.
        """
        with self._lock:
            candidates = [r for r in self._rooms.values() if r.is_valid and not r.occupied]
            if floor is not None:
                candidates = [r for r in candidates if r.floor_level == floor]
            if not candidates:
                return None
            if near is not None:
                target = as_vec3(near)
                room = min(candidates, key=lambda r: (r.center.distance_to(target), r.room_id))
            else:
                room = min(candidates,
                           key=lambda r: (-RoomValidator.quality_score(r), r.room_id))
            room.occupied = True
            room.occupant = occupant
        self.bus.publish(RoomOccupied(room, occupant))
        log.debug(f"{room.room_id} claimed by {occupant!r}")
        return room

    # === Statistics ========================================================

    def statistics(self) -> RoomStatistics:
        with self._lock:
            rooms = list(self._rooms.values())
            invalid = len(self._last_invalid)

        stats = RoomStatistics(total_rooms=len(rooms), invalid_regions=invalid)
        if not rooms:
            return stats

        stats.valid_rooms = sum(1 for r in rooms if r.is_valid)
        stats.sunbed_rooms = sum(1 for r in rooms if r.is_sunbed_room)
        stats.standard_rooms = len(rooms) - stats.sunbed_rooms
        stats.occupied_rooms = sum(1 for r in rooms if r.occupied)

        prices = [r.price for r in rooms]
        reputations = [r.reputation for r in rooms]
        stats.average_price = sum(prices) / len(rooms)
        stats.average_reputation = sum(reputations) / len(rooms)
        stats.average_size = sum(r.size for r in rooms) / len(rooms)
        stats.min_price, stats.max_price = min(prices), max(prices)
        stats.min_reputation, stats.max_reputation = min(reputations), max(reputations)
        for r in rooms:
            stats.floor_distribution[r.floor_level] = stats.floor_distribution.get(r.floor_level, 0) + 1
        return stats

    @property
    def last_invalid_regions(self) -> list[Region]:
        with self._lock:
            return list(self._last_invalid)
