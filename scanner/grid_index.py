"""Spatial hash from integer cell coordinates to cell descriptors.

Each build starts from an empty map, so the index is always a snapshot of the
objects handed to it.  Horizontal axes use `cell_size`; the vertical axis
uses `cell_height` (one story by default) after adding the per-category
offset, which lets floor and bed markers that sit slightly below the nominal
surface land in the same cell as the walls standing on it.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterator, Mapping, Optional

from scanner.models import (
    CATEGORIES,
    CELL_EMPTY,
    Cell,
    Coord,
    Handle,
    WorldObject,
)
from tools.geometry import Bounds, FloorScale, Vec3

log = logging.getLogger(__name__)


class GridIndex:
    def __init__(
        self,
        cell_size: float = 1.0,
        cell_height: Optional[float] = None,
        vertical_offsets: Optional[Mapping[str, float]] = None,
        floor_level_of: Optional[Callable[[float], int]] = None,
        floor_scale: Optional[FloorScale] = None,
    ):
        self.cell_size = cell_size
        self.floor_scale = floor_scale or FloorScale()
        self.cell_height = cell_height if cell_height is not None else self.floor_scale.floor_height
        self.vertical_offsets: dict[str, float] = dict(vertical_offsets or {})
        self.floor_level_of = floor_level_of or self.floor_scale.level_of

        self._cells: dict[Coord, Cell] = {}
        self._positions: dict[Handle, Vec3] = {}
        self.skipped_objects = 0

    # === Build =============================================================

    def build(
        self,
        categorized_objects: Mapping[str, list[WorldObject]],
        floor_filter: Optional[int] = None,
    ) -> "GridIndex":
        """Index all objects, optionally keeping only one floor level."""
        self._cells = {}
        self._positions = {}
        self.skipped_objects = 0

        for category in CATEGORIES:
            for handle, position in categorized_objects.get(category, ()):
                if handle is None:
                    continue
                adjusted_y = position[1] + self.vertical_offsets.get(category, 0.0)
                if floor_filter is not None and self.floor_level_of(adjusted_y) != floor_filter:
                    self.skipped_objects += 1
                    continue
                coord = self.world_to_cell(position, category)
                cell = self._cells.get(coord)
                if cell is None:
                    cell = Cell(coord)
                    self._cells[coord] = cell
                cell.add(category, handle, adjusted_y)
                self._positions[handle] = Vec3(*position)

        log.debug(
            f"Grid built: {len(self._cells)} cells, "
            f"{self.skipped_objects} objects outside floor filter"
        )
        return self

    # === Coordinate mapping ================================================

    def world_to_cell(self, position, category: Optional[str] = None) -> Coord:
        x, y, z = position
        if category is not None:
            y += self.vertical_offsets.get(category, 0.0)
        return (
            math.floor(x / self.cell_size),
            math.floor(y / self.cell_height),
            math.floor(z / self.cell_size),
        )

    def cell_center(self, coord: Coord) -> Vec3:
        return Vec3(
            (coord[0] + 0.5) * self.cell_size,
            (coord[1] + 0.5) * self.cell_height,
            (coord[2] + 0.5) * self.cell_size,
        )

    def cell_bounds(self, coord: Coord) -> Bounds:
        return Bounds(
            Vec3(coord[0] * self.cell_size, coord[1] * self.cell_height, coord[2] * self.cell_size),
            Vec3((coord[0] + 1) * self.cell_size,
                 (coord[1] + 1) * self.cell_height,
                 (coord[2] + 1) * self.cell_size),
        )

    def region_bounds(self, cells, floor_level: int) -> Bounds:
        """Horizontal footprint of *cells* grown by one cell on every side.

        Vertically the box spans the floor's base to base + room height.
        """
        xs = [c[0] for c in cells]
        zs = [c[2] for c in cells]
        base_y = self.floor_scale.base_y(floor_level)
        return Bounds(
            Vec3((min(xs) - 1) * self.cell_size, base_y, (min(zs) - 1) * self.cell_size),
            Vec3((max(xs) + 2) * self.cell_size,
                 base_y + self.floor_scale.room_height,
                 (max(zs) + 2) * self.cell_size),
        )

    # === Queries ===========================================================

    def get(self, coord: Coord) -> Optional[Cell]:
        return self._cells.get(coord)

    def effective_type(self, coord: Coord) -> str:
        cell = self._cells.get(coord)
        return cell.effective_type if cell is not None else CELL_EMPTY

    def position_of(self, handle: Handle) -> Optional[Vec3]:
        return self._positions.get(handle)

    def floor_cells(self) -> list[Coord]:
        """Seed candidates in a stable order."""
        return sorted(c for c, cell in self._cells.items() if cell.is_floor and cell.is_walkable)

    def sunbed_cells(self) -> list[Coord]:
        return sorted(c for c, cell in self._cells.items() if cell.is_sunbed)

    def counts(self) -> dict[str, int]:
        out = {"cells": len(self._cells)}
        for attr in ("is_floor", "is_wall", "is_door", "is_bed", "is_sunbed"):
            out[attr[3:]] = sum(1 for cell in self._cells.values() if getattr(cell, attr))
        return out

    def __contains__(self, coord) -> bool:
        return coord in self._cells

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._cells.values())

    def __len__(self) -> int:
        return len(self._cells)
