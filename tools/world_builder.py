"""Helpers that lay out tagged objects on a cell grid.

Positions are cell centers (x + 0.5, y, z + 0.5) with one-unit cells, which
is how a grid-snapping placement system drops objects into the world.
"""

from __future__ import annotations

from typing import Iterable, Optional

from scanner.models import TAG_BED, TAG_DOOR, TAG_FLOOR, TAG_SUNBED, TAG_WALL


def cell_position(x: int, z: int, y: float = 0.0) -> tuple[float, float, float]:
    return (x + 0.5, y, z + 0.5)


def add_room(
    world,
    x0: int,
    z0: int,
    width: int,
    depth: int,
    y: float = 0.0,
    beds: Iterable[tuple[int, int]] = ((1, 1),),
    doors: Iterable[tuple[int, int]] = ((1, -1),),
    prefix: Optional[str] = None,
) -> dict[str, list]:
    """Floor patch of width x depth cells ringed by walls.

    Bed and door offsets are relative to (x0, z0); a door offset must land on
    the wall ring and replaces the wall there.  Returns the handles per tag.
    """
    prefix = prefix or f"room_{x0}_{z0}_{y:g}"
    door_cells = {(x0 + dx, z0 + dz) for dx, dz in doors}
    out: dict[str, list] = {TAG_FLOOR: [], TAG_WALL: [], TAG_DOOR: [], TAG_BED: []}

    for x in range(x0, x0 + width):
        for z in range(z0, z0 + depth):
            out[TAG_FLOOR].append(
                world.add(f"{prefix}_floor_{x}_{z}", TAG_FLOOR, cell_position(x, z, y)))

    for x in range(x0 - 1, x0 + width + 1):
        for z in range(z0 - 1, z0 + depth + 1):
            on_ring = x in (x0 - 1, x0 + width) or z in (z0 - 1, z0 + depth)
            if not on_ring:
                continue
            if (x, z) in door_cells:
                out[TAG_DOOR].append(
                    world.add(f"{prefix}_door_{x}_{z}", TAG_DOOR, cell_position(x, z, y)))
            else:
                out[TAG_WALL].append(
                    world.add(f"{prefix}_wall_{x}_{z}", TAG_WALL, cell_position(x, z, y)))

    for dx, dz in beds:
        x, z = x0 + dx, z0 + dz
        out[TAG_BED].append(
            world.add(f"{prefix}_bed_{x}_{z}", TAG_BED, cell_position(x, z, y)))

    return out


def add_sunbed(world, x: int, z: int, y: float = 0.0, handle: Optional[str] = None):
    return world.add(handle or f"sunbed_{x}_{z}_{y:g}", TAG_SUNBED, cell_position(x, z, y))
