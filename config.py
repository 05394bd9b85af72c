"""Configuration defaults for RoomScan.

Every value can be overridden from the environment (or a `.env` file loaded by
main.py) using the ROOMSCAN_ prefix, e.g. ROOMSCAN_MAX_ROOM_SIZE=300.
Malformed values are logged and the default is used instead.
"""

import logging
import os

log = logging.getLogger(__name__)


def _env_number(name: str, default, cast):
    raw = os.environ.get(f"ROOMSCAN_{name}")
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        log.warning(f"Ignoring ROOMSCAN_{name}={raw!r} (not a valid {cast.__name__}); using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return _env_number(name, default, int)


def _env_float(name: str, default: float) -> float:
    return _env_number(name, default, float)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(f"ROOMSCAN_{name}")
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Recognition thresholds
DEFAULT_MIN_WALLS = _env_int("MIN_WALLS", 3)
DEFAULT_MIN_DOORS = _env_int("MIN_DOORS", 1)
DEFAULT_MIN_BEDS = _env_int("MIN_BEDS", 1)

# Flood fill guards
DEFAULT_MAX_ITERATIONS = _env_int("MAX_ITERATIONS", 1000)
DEFAULT_MAX_ROOM_SIZE = _env_int("MAX_ROOM_SIZE", 200)

# Bounding box sanity (world units, horizontal axes)
DEFAULT_MIN_EXTENT = _env_float("MIN_EXTENT", 0.5)
DEFAULT_MAX_EXTENT = _env_float("MAX_EXTENT", 50.0)
DEFAULT_DOOR_TOLERANCE = _env_float("DOOR_TOLERANCE", 2.0)

# Building geometry (must match the placement system)
FLOOR_HEIGHT = _env_float("FLOOR_HEIGHT", 4.6)
ROOM_HEIGHT = _env_float("ROOM_HEIGHT", 4.0)
DEFAULT_CELL_SIZE = _env_float("CELL_SIZE", 1.0)
FLOOR_DETECTION_OFFSET = _env_float("FLOOR_DETECTION_OFFSET", 0.5)
MAX_FLOORS = _env_int("MAX_FLOORS", 5)

# Timing (seconds)
DEFAULT_SCAN_INTERVAL = _env_float("SCAN_INTERVAL", 2.0)
CACHE_REFRESH_INTERVAL = _env_float("CACHE_REFRESH_INTERVAL", 1.0)

# Sunbed rooms
ENABLE_SUNBED_ROOMS = _env_bool("ENABLE_SUNBED_ROOMS", True)
DEFAULT_SUNBED_ROOM_PRICE = _env_float("SUNBED_ROOM_PRICE", 100.0)
DEFAULT_SUNBED_ROOM_REPUTATION = _env_float("SUNBED_ROOM_REPUTATION", 50.0)

# Scan scope
SCAN_ALL_FLOORS = _env_bool("SCAN_ALL_FLOORS", False)
