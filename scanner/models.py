"""Data structures shared by the room scanning pipeline.

Pure Python, no host-engine dependency.  World objects are referenced through
opaque, hashable handles supplied by the ObjectSource; the scanner never
inspects them beyond identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Hashable, Optional

import config
from tools.geometry import Bounds, Vec3

# ---------------------------------------------------------------------------
# Categories and cell types
# ---------------------------------------------------------------------------

TAG_FLOOR = "Floor"
TAG_WALL = "Wall"
TAG_DOOR = "Door"
TAG_BED = "Bed"
TAG_SUNBED = "Sunbed"

CATEGORIES: tuple[str, ...] = (TAG_FLOOR, TAG_WALL, TAG_DOOR, TAG_BED, TAG_SUNBED)

# Effective cell types, highest priority first
CELL_WALL = "wall"
CELL_DOOR = "door"
CELL_BED = "bed"
CELL_FLOOR = "floor"
CELL_SUNBED = "sunbed"
CELL_EMPTY = "empty"

WALKABLE_TYPES = frozenset({CELL_FLOOR, CELL_BED})

Coord = tuple[int, int, int]
Handle = Hashable
WorldObject = tuple[Handle, Vec3]

DIRECTIONS_4: tuple[Coord, ...] = (
    (0, 0, 1),
    (1, 0, 0),
    (0, 0, -1),
    (-1, 0, 0),
)

DIRECTIONS_8: tuple[Coord, ...] = (
    (0, 0, 1),
    (1, 0, 1),
    (1, 0, 0),
    (1, 0, -1),
    (0, 0, -1),
    (-1, 0, -1),
    (-1, 0, 0),
    (-1, 0, 1),
)


def offset(coord: Coord, direction: Coord) -> Coord:
    return (coord[0] + direction[0], coord[1] + direction[1], coord[2] + direction[2])


# ---------------------------------------------------------------------------
# Grid cell
# ---------------------------------------------------------------------------

@dataclass
class Cell:
    """One discretized grid coordinate and everything that landed in it."""
    coord: Coord
    is_floor: bool = False
    is_wall: bool = False
    is_door: bool = False
    is_bed: bool = False
    is_sunbed: bool = False
    # category -> handles in insertion order
    objects: dict[str, list[Handle]] = field(default_factory=dict)
    world_y: Optional[float] = None     # adjusted height of the first object placed here

    def add(self, category: str, handle: Handle, adjusted_y: float) -> None:
        if category == TAG_FLOOR:
            self.is_floor = True
        elif category == TAG_WALL:
            self.is_wall = True
        elif category == TAG_DOOR:
            self.is_door = True
        elif category == TAG_BED:
            self.is_bed = True
        elif category == TAG_SUNBED:
            self.is_sunbed = True
        else:
            raise ValueError(f"Unknown category: {category}")
        self.objects.setdefault(category, []).append(handle)
        if self.world_y is None:
            self.world_y = adjusted_y

    def handles(self, category: str) -> list[Handle]:
        return self.objects.get(category, [])

    @property
    def effective_type(self) -> str:
        """Wall > Door > Bed > Floor > Sunbed."""
        if self.is_wall:
            return CELL_WALL
        if self.is_door:
            return CELL_DOOR
        if self.is_bed:
            return CELL_BED
        if self.is_floor:
            return CELL_FLOOR
        if self.is_sunbed:
            return CELL_SUNBED
        return CELL_EMPTY

    @property
    def is_walkable(self) -> bool:
        return self.effective_type in WALKABLE_TYPES

    def describe(self) -> str:
        parts = [c for c in CATEGORIES if self.objects.get(c)]
        return ", ".join(parts) if parts else "empty"


# ---------------------------------------------------------------------------
# Region (transient) and Room (persistent)
# ---------------------------------------------------------------------------

@dataclass
class Region:
    """A connected floor area found by one flood-fill run."""
    cells: frozenset[Coord]
    floor_level: int
    bounds: Bounds
    walls: list[Handle] = field(default_factory=list)
    doors: list[Handle] = field(default_factory=list)
    beds: list[Handle] = field(default_factory=list)
    sunbeds: list[Handle] = field(default_factory=list)
    door_positions: list[Vec3] = field(default_factory=list)
    boundary: frozenset[Coord] = frozenset()   # wall/door cells that stopped the fill
    is_sunbed: bool = False
    # Set by the validator
    is_valid: Optional[bool] = None
    reasons: list[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def anchor(self) -> Coord:
        """Smallest member coordinate; used for deterministic ordering."""
        return min(self.cells)


@dataclass(eq=False)
class Room:
    """A validated room.  Occupancy belongs to the repository."""
    room_id: str
    floor_cells: frozenset[Coord]
    bounds: Bounds
    floor_level: int
    walls: list[Handle] = field(default_factory=list)
    doors: list[Handle] = field(default_factory=list)
    beds: list[Handle] = field(default_factory=list)
    sunbeds: list[Handle] = field(default_factory=list)
    is_valid: bool = True
    is_sunbed_room: bool = False     # fixed-price category
    price: float = 0.0
    reputation: float = 0.0
    occupied: bool = False
    occupant: Any = None
    marker: Any = None               # runtime representation, owned by RoomFactory

    @property
    def center(self) -> Vec3:
        return self.bounds.center

    @property
    def size(self) -> int:
        return len(self.floor_cells)

    @property
    def room_type(self) -> str:
        return "SunbedRoom" if self.is_sunbed_room else "StandardRoom"

    def summary(self) -> str:
        return (
            f"{self.room_id}: size {self.size}, walls {len(self.walls)}, "
            f"doors {len(self.doors)}, beds {len(self.beds)}, "
            f"sunbeds {len(self.sunbeds)}, price {self.price:.0f}, "
            f"reputation {self.reputation:.0f}, valid {self.is_valid}"
        )


# ---------------------------------------------------------------------------
# Settings, reports, statistics
# ---------------------------------------------------------------------------

def _default_offsets() -> dict[str, float]:
    return {
        TAG_FLOOR: config.FLOOR_DETECTION_OFFSET,
        TAG_WALL: 0.0,
        TAG_DOOR: 0.0,
        TAG_BED: config.FLOOR_DETECTION_OFFSET,
        TAG_SUNBED: config.FLOOR_DETECTION_OFFSET,
    }


@dataclass
class ScanSettings:
    # Recognition
    min_walls: int = config.DEFAULT_MIN_WALLS
    min_doors: int = config.DEFAULT_MIN_DOORS
    min_beds: int = config.DEFAULT_MIN_BEDS
    min_extent: float = config.DEFAULT_MIN_EXTENT
    max_extent: float = config.DEFAULT_MAX_EXTENT
    door_tolerance: float = config.DEFAULT_DOOR_TOLERANCE

    # Performance guards
    max_iterations: int = config.DEFAULT_MAX_ITERATIONS
    max_room_size: int = config.DEFAULT_MAX_ROOM_SIZE

    # Grid
    cell_size: float = config.DEFAULT_CELL_SIZE
    cell_height: float = config.FLOOR_HEIGHT
    vertical_offsets: dict[str, float] = field(default_factory=_default_offsets)

    # Timing
    scan_interval: float = config.DEFAULT_SCAN_INTERVAL
    cache_refresh_interval: float = config.CACHE_REFRESH_INTERVAL

    # Floors
    scan_all_floors: bool = config.SCAN_ALL_FLOORS
    current_scan_floor: int = 1
    max_floors: int = config.MAX_FLOORS

    # Sunbed rooms
    enable_sunbed_rooms: bool = config.ENABLE_SUNBED_ROOMS
    sunbed_room_price: float = config.DEFAULT_SUNBED_ROOM_PRICE
    sunbed_room_reputation: float = config.DEFAULT_SUNBED_ROOM_REPUTATION

    def validate(self) -> list[str]:
        """Return a list of problems; empty when the settings are usable."""
        problems: list[str] = []
        if self.min_walls < 0 or self.min_doors < 0 or self.min_beds < 0:
            problems.append("minimum wall/door/bed counts must not be negative")
        if self.max_iterations <= 0:
            problems.append("max_iterations must be positive")
        if self.max_room_size <= 0:
            problems.append("max_room_size must be positive")
        if self.cell_size <= 0 or self.cell_height <= 0:
            problems.append("cell dimensions must be positive")
        if self.min_extent > self.max_extent:
            problems.append("min_extent exceeds max_extent")
        return problems


@dataclass
class ScanReport:
    """Outcome of one scan, kept for diagnostics."""
    regions: list[Region] = field(default_factory=list)
    valid_rooms: list[Room] = field(default_factory=list)
    invalid_regions: list[Region] = field(default_factory=list)
    aborted_regions: int = 0
    total_cells: int = 0
    object_counts: dict[str, int] = field(default_factory=dict)
    floor_scope: Optional[int] = None      # None = all floors
    duration_s: float = 0.0
    status: str = "pending"
    finished_at: Optional[datetime] = None

    @property
    def valid_count(self) -> int:
        return len(self.valid_rooms)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_regions)

    def summary(self) -> str:
        scope = "all floors" if self.floor_scope is None else f"floor {self.floor_scope}"
        return (
            f"Scan {self.status} ({scope}): {len(self.regions)} regions, "
            f"{self.valid_count} valid, {self.invalid_count} invalid, "
            f"{self.aborted_regions} aborted, {self.total_cells} cells, "
            f"{self.duration_s:.3f}s"
        )


@dataclass
class RoomStatistics:
    total_rooms: int = 0
    valid_rooms: int = 0
    invalid_regions: int = 0
    standard_rooms: int = 0
    sunbed_rooms: int = 0
    occupied_rooms: int = 0
    average_price: float = 0.0
    average_reputation: float = 0.0
    average_size: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    min_reputation: float = 0.0
    max_reputation: float = 0.0
    floor_distribution: dict[int, int] = field(default_factory=dict)

    def __str__(self) -> str:
        return (
            f"Rooms: {self.total_rooms} ({self.valid_rooms} valid, "
            f"{self.invalid_regions} invalid regions last scan)\n"
            f"Types: {self.standard_rooms} standard, {self.sunbed_rooms} sunbed\n"
            f"Occupied: {self.occupied_rooms}\n"
            f"Price: avg {self.average_price:.0f} "
            f"(range {self.min_price:.0f} - {self.max_price:.0f})\n"
            f"Reputation: avg {self.average_reputation:.0f} "
            f"(range {self.min_reputation:.0f} - {self.max_reputation:.0f})\n"
            f"Size: avg {self.average_size:.1f} cells"
        )
