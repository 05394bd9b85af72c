"""Bounded flood fill over a GridIndex.

Every walkable floor cell ends up in at most one region.  Expansion is
4-directional and stops at wall and door cells, which are kept as the
region's boundary.  Components (walls, doors, beds, sunbeds) are collected
afterwards with an 8-directional sweep so corner walls count too.

Two hard caps bound the work per region:
  - max_iterations: queue pops
  - max_region_size: recorded cells
Hitting either aborts the region.  Its remaining connected floor is swept into
the processed set so no fragment of it can re-seed as a smaller region.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from scanner.grid_index import GridIndex
from scanner.models import (
    CELL_DOOR,
    CELL_WALL,
    DIRECTIONS_4,
    DIRECTIONS_8,
    TAG_BED,
    TAG_DOOR,
    TAG_SUNBED,
    TAG_WALL,
    WALKABLE_TYPES,
    Coord,
    Region,
    offset,
)

log = logging.getLogger(__name__)

IDLE = "idle"
EXPANDING = "expanding"
COMPLETED = "completed"
ABORTED = "aborted"


@dataclass
class SegmentationResult:
    regions: list[Region] = field(default_factory=list)
    aborted: int = 0
    aborted_seeds: list[Coord] = field(default_factory=list)
    iterations: int = 0


@dataclass
class _Expansion:
    cells: list[Coord]
    boundary_walls: set[Coord]
    boundary_doors: set[Coord]
    iterations: int
    aborted: bool
    reason: str = ""


class SegmentationEngine:
    """Partitions the walkable floor of a grid into disjoint regions."""

    def __init__(
        self,
        max_iterations: int = 1000,
        max_region_size: int = 200,
        include_sunbed_regions: bool = True,
    ):
        self.max_iterations = max_iterations
        self.max_region_size = max_region_size
        self.include_sunbed_regions = include_sunbed_regions
        self._state = IDLE
        self.last_result: Optional[SegmentationResult] = None

    @property
    def state(self) -> str:
        return self._state

    # === Public API ========================================================

    def segment(self, grid: GridIndex) -> SegmentationResult:
        """Find every region in *grid*; aborted regions are only counted."""
        result = SegmentationResult()
        processed: set[Coord] = set()

        for seed in grid.floor_cells():
            if seed in processed:
                continue

            expansion = self._expand(seed, grid, processed)
            result.iterations += expansion.iterations

            if expansion.aborted:
                result.aborted += 1
                result.aborted_seeds.append(seed)
                swept = self._sweep(seed, grid, processed)
                log.warning(
                    f"Region at {seed} aborted: {expansion.reason} "
                    f"({len(expansion.cells) + swept} cells discarded)"
                )
                continue

            if expansion.cells:
                region = self._build_region(expansion, grid)
                result.regions.append(region)
                log.debug(
                    f"Region at {region.anchor}: {region.size} cells, "
                    f"{len(region.walls)} walls, {len(region.doors)} doors, "
                    f"{len(region.beds)} beds"
                )

        if self.include_sunbed_regions:
            result.regions.extend(self.isolated_sunbed_regions(grid))

        self._state = IDLE
        self.last_result = result
        log.debug(
            f"Segmentation done: {len(result.regions)} regions, "
            f"{result.aborted} aborted, {result.iterations} iterations"
        )
        return result

    def isolated_sunbed_regions(self, grid: GridIndex) -> list[Region]:
        """One single-cell region per sunbed cell with no floor in or around it."""
        regions: list[Region] = []
        for coord in grid.sunbed_cells():
            cell = grid.get(coord)
            if cell.is_floor or cell.effective_type in WALKABLE_TYPES:
                continue
            if any(
                (n := grid.get(offset(coord, d))) is not None and n.is_floor
                for d in DIRECTIONS_8
            ):
                continue

            level = grid.floor_level_of(cell.world_y)
            regions.append(Region(
                cells=frozenset({coord}),
                floor_level=level,
                bounds=grid.region_bounds([coord], level),
                sunbeds=list(dict.fromkeys(cell.handles(TAG_SUNBED))),
                is_sunbed=True,
            ))
            log.debug(f"Isolated sunbed region at {coord}")
        return regions

    # === Flood fill ========================================================

    def _expand(self, seed: Coord, grid: GridIndex, processed: set[Coord]) -> _Expansion:
        self._state = EXPANDING
        queue: deque[Coord] = deque([seed])
        visited: set[Coord] = {seed}
        cells: list[Coord] = []
        walls: set[Coord] = set()
        doors: set[Coord] = set()
        iterations = 0

        while queue:
            iterations += 1
            if iterations > self.max_iterations:
                self._state = ABORTED
                return _Expansion(cells, walls, doors, iterations, True,
                                  f"iteration cap {self.max_iterations} exceeded")

            current = queue.popleft()
            if current in processed or grid.effective_type(current) not in WALKABLE_TYPES:
                continue

            cells.append(current)
            processed.add(current)
            if len(cells) > self.max_region_size:
                self._state = ABORTED
                return _Expansion(cells, walls, doors, iterations, True,
                                  f"size cap {self.max_region_size} exceeded")

            for d in DIRECTIONS_4:
                neighbor = offset(current, d)
                if neighbor in visited:
                    continue
                kind = grid.effective_type(neighbor)
                if kind == CELL_WALL:
                    walls.add(neighbor)
                    visited.add(neighbor)
                elif kind == CELL_DOOR:
                    doors.add(neighbor)
                    visited.add(neighbor)
                elif kind in WALKABLE_TYPES:
                    visited.add(neighbor)
                    queue.append(neighbor)

        self._state = COMPLETED
        return _Expansion(cells, walls, doors, iterations, False)

    def _sweep(self, seed: Coord, grid: GridIndex, processed: set[Coord]) -> int:
        """Mark the rest of an aborted component processed; returns cells added."""
        added = 0
        queue: deque[Coord] = deque([seed])
        seen: set[Coord] = {seed}
        while queue:
            current = queue.popleft()
            if grid.effective_type(current) not in WALKABLE_TYPES:
                continue
            if current not in processed:
                processed.add(current)
                added += 1
            for d in DIRECTIONS_4:
                neighbor = offset(current, d)
                if neighbor not in seen:
                    seen.add(neighbor)
                    queue.append(neighbor)
        return added

    # === Region assembly ===================================================

    def _build_region(self, expansion: _Expansion, grid: GridIndex) -> Region:
        members = sorted(expansion.cells)
        member_set = frozenset(members)
        walls: dict = {}
        doors: dict = {}
        beds: dict = {}
        sunbeds: dict = {}

        for coord in members:
            own = grid.get(coord)
            beds.update(dict.fromkeys(own.handles(TAG_BED)))
            sunbeds.update(dict.fromkeys(own.handles(TAG_SUNBED)))

            for d in DIRECTIONS_8:
                neighbor = grid.get(offset(coord, d))
                if neighbor is None or neighbor.coord in member_set:
                    continue
                walls.update(dict.fromkeys(neighbor.handles(TAG_WALL)))
                doors.update(dict.fromkeys(neighbor.handles(TAG_DOOR)))
                # Walkable neighbours belong to their own region
                if neighbor.effective_type not in WALKABLE_TYPES:
                    beds.update(dict.fromkeys(neighbor.handles(TAG_BED)))
                    sunbeds.update(dict.fromkeys(neighbor.handles(TAG_SUNBED)))

        heights = [grid.get(c).world_y for c in members if grid.get(c).world_y is not None]
        level = grid.floor_level_of(min(heights)) if heights else 1

        door_list = list(doors)
        return Region(
            cells=member_set,
            floor_level=level,
            bounds=grid.region_bounds(members, level),
            walls=list(walls),
            doors=door_list,
            beds=list(beds),
            sunbeds=list(sunbeds),
            door_positions=[p for p in (grid.position_of(h) for h in door_list) if p is not None],
            boundary=frozenset(expansion.boundary_walls | expansion.boundary_doors),
        )
