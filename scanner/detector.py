"""Scan orchestration.

One scan runs these phases in order:

  cache -> grid -> segmentation -> validation -> materialization -> diff

scan_now() runs them back to back.  iter_scan() yields the phase name after
each one so a host with a tick loop can spread a scan over several ticks.
Only one scan may be in flight; a request that arrives meanwhile is dropped.

A scan that raises is logged, recorded in last_report, and leaves the stored
rooms untouched.  The next scan starts from scratch.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterator, Optional

from scanner.events import EventBus, FloorChanged, Subscription
from scanner.grid_index import GridIndex
from scanner.models import CATEGORIES, ScanReport, ScanSettings
from scanner.object_cache import ObjectCache
from scanner.repository import RoomRepository
from scanner.room_factory import RoomFactory
from scanner.segmentation import SegmentationEngine
from scanner.validator import RoomValidator
from tools.geometry import FloorScale

log = logging.getLogger(__name__)

DETECTOR_SOURCE = "RoomDetector"

PHASE_CACHE = "cache"
PHASE_GRID = "grid"
PHASE_SEGMENTATION = "segmentation"
PHASE_VALIDATION = "validation"
PHASE_MATERIALIZATION = "materialization"
PHASE_DIFF = "diff"

PHASES = (
    PHASE_CACHE,
    PHASE_GRID,
    PHASE_SEGMENTATION,
    PHASE_VALIDATION,
    PHASE_MATERIALIZATION,
    PHASE_DIFF,
)


class RoomDetector:
    """Wires the pipeline together and owns the scan schedule."""

    def __init__(
        self,
        source,
        placement=None,
        bus: Optional[EventBus] = None,
        settings: Optional[ScanSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        on_spawn=None,
        on_despawn=None,
    ):
        # Private copy: floor scope changes must not leak into the caller's settings
        if settings is None:
            settings = ScanSettings()
        self.settings = replace(settings, vertical_offsets=dict(settings.vertical_offsets))
        problems = self.settings.validate()
        if problems:
            raise ValueError(f"Invalid scan settings: {'; '.join(problems)}")

        self.placement = placement
        self.bus = bus or EventBus()
        self._clock = clock
        self.floor_scale = FloorScale(floor_height=self.settings.cell_height)

        self.cache = ObjectCache(source, self.settings.cache_refresh_interval, clock)
        self.segmentation = SegmentationEngine(
            max_iterations=self.settings.max_iterations,
            max_region_size=self.settings.max_room_size,
            include_sunbed_regions=self.settings.enable_sunbed_rooms,
        )
        self.validator = RoomValidator(self.settings)
        self.factory = RoomFactory(self.settings, on_spawn=on_spawn, on_despawn=on_despawn)
        self.repository = RoomRepository(self.factory, self.bus)

        self._scan_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._scan_floor = self._clamp_floor(self.settings.current_scan_floor)
        self._observed_active_floor: Optional[int] = None
        self.last_report: Optional[ScanReport] = None
        self.scan_count = 0

        self._subscriptions: list[Subscription] = [
            self.bus.subscribe(FloorChanged, self._on_floor_changed),
        ]

    # === Scanning ==========================================================

    def scan_now(self) -> None:
        for _ in self.iter_scan():
            pass

    def iter_scan(self) -> Iterator[str]:
        """Run one scan, yielding the name of each finished phase."""
        if not self._scan_lock.acquire(blocking=False):
            log.info("Scan already in progress; request dropped")
            return

        report = ScanReport()
        started = self._clock()
        try:
            floor = self._resolve_scan_floor()
            report.floor_scope = floor

            objects = {cat: self.cache.get_objects(cat) for cat in CATEGORIES}
            report.object_counts = {cat: len(objs) for cat, objs in objects.items()}
            for cat, count in report.object_counts.items():
                if count == 0:
                    log.warning(f"No '{cat}' objects found")
            yield PHASE_CACHE

            grid = GridIndex(
                cell_size=self.settings.cell_size,
                cell_height=self.settings.cell_height,
                vertical_offsets=self.settings.vertical_offsets,
                floor_level_of=self._floor_level_of,
                floor_scale=self.floor_scale,
            ).build(objects, floor_filter=floor)
            report.total_cells = len(grid)
            yield PHASE_GRID

            segmented = self.segmentation.segment(grid)
            report.regions = segmented.regions
            report.aborted_regions = segmented.aborted
            yield PHASE_SEGMENTATION

            validated = self.validator.validate_all(segmented.regions)
            report.invalid_regions = validated.invalid
            yield PHASE_VALIDATION

            rooms = [self.factory.materialize(region) for region in validated.valid]
            yield PHASE_MATERIALIZATION

            self.repository.update(rooms, validated.invalid)
            report.valid_rooms = self.repository.get_all()
            report.status = "completed"
            yield PHASE_DIFF
        except Exception as e:
            log.exception("Scan failed; previous rooms kept")
            report.status = f"failed: {e}"
        finally:
            if report.status == "pending":
                # Generator closed before the diff phase
                report.status = "interrupted"
            report.duration_s = self._clock() - started
            report.finished_at = datetime.now()
            self.last_report = report
            self.scan_count += 1
            self._scan_lock.release()
            log.info(report.summary())

    @property
    def is_scanning(self) -> bool:
        return self._scan_lock.locked()

    # === Floor scope =======================================================

    @property
    def scan_floor(self) -> Optional[int]:
        """The floor the next scan covers, or None for all floors."""
        return None if self.settings.scan_all_floors else self._scan_floor

    def set_scan_floor(self, level: int) -> bool:
        if not 1 <= level <= self.settings.max_floors:
            log.warning(f"Floor {level} outside 1..{self.settings.max_floors}")
            return False
        if self.placement is not None and not self.placement.is_floor_active(level):
            log.warning(f"Floor {level} is not active; scan floor unchanged")
            return False
        self.settings.scan_all_floors = False
        if self.placement is not None:
            self._observed_active_floor = self.placement.active_floor()
        self._change_floor(level)
        return True

    def set_scan_all_floors(self, enabled: bool) -> None:
        self.settings.scan_all_floors = enabled
        log.info(f"Scanning {'all floors' if enabled else f'floor {self._scan_floor}'}")

    def _resolve_scan_floor(self) -> Optional[int]:
        if self.settings.scan_all_floors:
            return None
        if self.placement is not None:
            # Follow the placement system only when its floor actually moves
            active = self.placement.active_floor()
            if active != self._observed_active_floor:
                self._observed_active_floor = active
                self._change_floor(self._clamp_floor(active))
        return self._scan_floor

    def _change_floor(self, level: int) -> None:
        if level == self._scan_floor:
            return
        previous = self._scan_floor
        self._scan_floor = level
        log.info(f"Scan floor changed: {previous} -> {level}")
        self.bus.publish(FloorChanged(DETECTOR_SOURCE, level))

    def _on_floor_changed(self, event: FloorChanged) -> None:
        if event.source == DETECTOR_SOURCE:
            return
        level = self._clamp_floor(event.floor)
        if self.settings.scan_all_floors:
            log.info(f"Scan scope narrowed to floor {level} by {event.source}")
            self.settings.scan_all_floors = False
        if self.placement is not None:
            self._observed_active_floor = self.placement.active_floor()
        if level != self._scan_floor:
            log.info(f"Scan floor retargeted by {event.source}: {self._scan_floor} -> {level}")
            self._scan_floor = level

    def _clamp_floor(self, level: int) -> int:
        return max(1, min(int(level), self.settings.max_floors))

    def _floor_level_of(self, y: float) -> int:
        if self.placement is not None:
            return self.placement.floor_level_of(y)
        return self.floor_scale.level_of(y)

    # === Auto scan =========================================================

    def start_auto_scan(self) -> None:
        if self.is_auto_scanning:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._auto_scan_loop, name="room-scan", daemon=True)
        self._thread.start()
        log.info(f"Auto scan started (every {self.settings.scan_interval}s)")

    def stop_auto_scan(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    @property
    def is_auto_scanning(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _auto_scan_loop(self) -> None:
        while not self._stop_event.is_set():
            self.scan_now()
            self._stop_event.wait(self.settings.scan_interval)

    # === Diagnostics =======================================================

    def check_tag_status(self) -> dict[str, int]:
        counts = {cat: len(self.cache.get_objects(cat)) for cat in CATEGORIES}
        for cat, count in counts.items():
            if count == 0:
                log.warning(f"Tag '{cat}': no objects")
            else:
                log.info(f"Tag '{cat}': {count} objects")
        return counts

    def get_scan_info(self) -> str:
        scope = "all floors" if self.scan_floor is None else f"floor {self.scan_floor}"
        last = self.last_report.status if self.last_report else "never"
        return (
            f"Scans: {self.scan_count}, rooms: {len(self.repository)}, scope: {scope}, "
            f"last scan: {last}, auto: {'on' if self.is_auto_scanning else 'off'}"
        )

    def close(self) -> None:
        self.stop_auto_scan()
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
