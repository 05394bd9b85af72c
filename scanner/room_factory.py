"""Turns validated regions into Room records and manages their markers.

A marker is the room's runtime representation in the host (a named node, a
debug label, ...).  The factory builds a RoomMarker value and hands it to the
optional `on_spawn` hook; `on_despawn` is called when the room goes away.
Hook failures are logged and never abort a scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from scanner.models import Region, Room, ScanSettings
from tools.geometry import Vec3, round_half_up

log = logging.getLogger(__name__)

BASE_PRICE = 100.0
BASE_REPUTATION = 50.0


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def price_for(size: int, beds: int, doors: int, walls: int, floor_level: int) -> float:
    return (BASE_PRICE + size * 10 + beds * 50 + doors * 20
            + walls * 2 + floor_level * 25)


def reputation_for(size: int, beds: int, doors: int, floor_level: int) -> float:
    # Door bonus is capped so extra doors never lower the score
    return (BASE_REPUTATION + min(size * 2, 50) + beds * 10
            + min(doors, 2) * 5 + (floor_level - 1) * 15)


def room_id_for(region: Region) -> str:
    prefix = "SunbedRoom" if region.is_sunbed else "Room"
    center = region.bounds.center
    return f"{prefix}_F{region.floor_level}_{round_half_up(center.x)}_{round_half_up(center.z)}"


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

@dataclass
class RoomMarker:
    name: str
    room_type: str
    center: Vec3
    size: Vec3
    info: str
    alive: bool = True


class RoomFactory:
    def __init__(
        self,
        settings: ScanSettings,
        on_spawn: Optional[Callable[[Room, RoomMarker], None]] = None,
        on_despawn: Optional[Callable[[Room, RoomMarker], None]] = None,
    ):
        self.settings = settings
        self.on_spawn = on_spawn
        self.on_despawn = on_despawn

    # === Public API ========================================================

    def materialize(self, region: Region) -> Room:
        """Build the Room record for a validated region (no marker yet)."""
        if region.is_sunbed:
            price = self.settings.sunbed_room_price
            reputation = self.settings.sunbed_room_reputation
        else:
            price = price_for(region.size, len(region.beds), len(region.doors),
                              len(region.walls), region.floor_level)
            reputation = reputation_for(region.size, len(region.beds),
                                        len(region.doors), region.floor_level)

        return Room(
            room_id=room_id_for(region),
            floor_cells=region.cells,
            bounds=region.bounds,
            floor_level=region.floor_level,
            walls=list(region.walls),
            doors=list(region.doors),
            beds=list(region.beds),
            sunbeds=list(region.sunbeds),
            is_valid=bool(region.is_valid) if region.is_valid is not None else True,
            is_sunbed_room=region.is_sunbed,
            price=price,
            reputation=reputation,
        )

    def spawn(self, room: Room) -> RoomMarker:
        marker = RoomMarker(
            name=room.room_id,
            room_type=room.room_type,
            center=room.center,
            size=room.bounds.size,
            info=(
                f"{room.room_type} on floor {room.floor_level}: {room.size} cells, "
                f"{len(room.beds)} beds, {len(room.doors)} doors, "
                f"price {room.price:.0f}, reputation {room.reputation:.0f}"
            ),
        )
        room.marker = marker
        if self.on_spawn is not None:
            try:
                self.on_spawn(room, marker)
            except Exception:
                log.exception(f"Spawn hook failed for {room.room_id}")
        log.debug(f"Spawned marker {marker.name}")
        return marker

    def teardown(self, room: Room) -> None:
        """Remove the room's marker.  Safe to call more than once."""
        marker = room.marker
        room.marker = None
        if marker is None or not getattr(marker, "alive", True):
            return
        marker.alive = False
        if self.on_despawn is not None:
            try:
                self.on_despawn(room, marker)
            except Exception:
                log.exception(f"Despawn hook failed for {room.room_id}")
        log.debug(f"Tore down marker {marker.name}")
