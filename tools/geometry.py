"""Small 3D geometry helpers shared by the scanner.

World convention: Y is up, rooms lie in the X/Z plane.  Floor levels are
1-based; level 1 starts at y = 0 and each level is FLOOR_HEIGHT tall.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple

import config


class Vec3(NamedTuple):
    x: float
    y: float
    z: float

    def distance_to(self, other: Vec3) -> float:
        return math.dist(self, other)


def as_vec3(value) -> Vec3:
    """Coerce any 3-sequence into a Vec3."""
    if isinstance(value, Vec3):
        return value
    x, y, z = value
    return Vec3(float(x), float(y), float(z))


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned box given by its min and max corners."""
    min: Vec3
    max: Vec3

    @property
    def center(self) -> Vec3:
        return Vec3(
            (self.min.x + self.max.x) * 0.5,
            (self.min.y + self.max.y) * 0.5,
            (self.min.z + self.max.z) * 0.5,
        )

    @property
    def size(self) -> Vec3:
        return Vec3(
            self.max.x - self.min.x,
            self.max.y - self.min.y,
            self.max.z - self.min.z,
        )

    def contains(self, point) -> bool:
        p = as_vec3(point)
        return (self.min.x <= p.x <= self.max.x and
                self.min.y <= p.y <= self.max.y and
                self.min.z <= p.z <= self.max.z)

    def closest_point(self, point) -> Vec3:
        p = as_vec3(point)
        return Vec3(
            min(max(p.x, self.min.x), self.max.x),
            min(max(p.y, self.min.y), self.max.y),
            min(max(p.z, self.min.z), self.max.z),
        )

    def distance_to(self, point) -> float:
        """0.0 when inside, otherwise the distance to the nearest face."""
        p = as_vec3(point)
        return p.distance_to(self.closest_point(p))


@dataclass(frozen=True)
class FloorScale:
    """Maps vertical world coordinates to 1-based floor levels."""
    floor_height: float = config.FLOOR_HEIGHT
    room_height: float = config.ROOM_HEIGHT

    def level_of(self, y: float) -> int:
        return math.floor(y / self.floor_height) + 1

    def base_y(self, level: int) -> float:
        return (level - 1) * self.floor_height


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
