"""Acceptance rules for candidate regions.

Two tracks:
  - standard rooms need enough walls, doors and beds, a sane size and
    footprint, and a door reachable from the footprint;
  - sunbed rooms only need a sunbed and a floor cell.

Failing regions are flagged (with every failing reason) and returned, never
dropped, so diagnostics can explain why a build was not recognised.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from scanner.models import Region, Room, ScanReport, ScanSettings

log = logging.getLogger(__name__)

DOOR_SCORE_CAP = 3
SUNBED_SCORE_BONUS = 100.0


def _reason_kind(reason: str) -> str:
    """'walls 2 < 3' -> 'walls', 'x extent 0.40 < 0.5' -> 'extent'."""
    if reason.startswith("no "):
        return reason
    head, _, rest = reason.partition(" ")
    if head in ("x", "z"):
        return rest.partition(" ")[0]
    return head


@dataclass
class ValidationResult:
    valid: list[Region] = field(default_factory=list)
    invalid: list[Region] = field(default_factory=list)


class RoomValidator:
    def __init__(self, settings: ScanSettings):
        self.settings = settings

    # === Public API ========================================================

    def validate_all(self, regions: list[Region]) -> ValidationResult:
        result = ValidationResult()
        for region in regions:
            if self.validate(region):
                result.valid.append(region)
            else:
                result.invalid.append(region)
        log.info(f"Validation: {len(result.valid)} valid, {len(result.invalid)} invalid")
        return result

    def validate(self, region: Region) -> bool:
        """Classify *region* in place and return whether it passed."""
        if region.is_sunbed:
            reasons = self._sunbed_failures(region)
        else:
            reasons = self._standard_failures(region)

        region.reasons = reasons
        region.is_valid = not reasons
        if reasons:
            log.debug(f"Region at {region.anchor} rejected: {', '.join(reasons)}")
        return region.is_valid

    # === Tracks ============================================================

    def _standard_failures(self, region: Region) -> list[str]:
        s = self.settings
        reasons: list[str] = []

        if len(region.walls) < s.min_walls:
            reasons.append(f"walls {len(region.walls)} < {s.min_walls}")
        if len(region.doors) < s.min_doors:
            reasons.append(f"doors {len(region.doors)} < {s.min_doors}")
        if len(region.beds) < s.min_beds:
            reasons.append(f"beds {len(region.beds)} < {s.min_beds}")

        if region.size < 1:
            reasons.append("no floor cells")
        elif region.size > s.max_room_size:
            reasons.append(f"size {region.size} > {s.max_room_size}")

        size = region.bounds.size
        for axis, extent in (("x", size.x), ("z", size.z)):
            if extent < s.min_extent:
                reasons.append(f"{axis} extent {extent:.2f} < {s.min_extent}")
            elif extent > s.max_extent:
                reasons.append(f"{axis} extent {extent:.2f} > {s.max_extent}")

        if not self._has_accessible_door(region):
            reasons.append("no accessible door")

        return reasons

    @staticmethod
    def _sunbed_failures(region: Region) -> list[str]:
        reasons: list[str] = []
        if not region.sunbeds:
            reasons.append("no sunbed")
        if region.size < 1:
            reasons.append("no floor cells")
        return reasons

    def _has_accessible_door(self, region: Region) -> bool:
        tolerance = self.settings.door_tolerance
        return any(region.bounds.distance_to(p) <= tolerance for p in region.door_positions)

    # === Ranking ===========================================================

    @staticmethod
    def quality_score(room: Room) -> float:
        """Ranking score; not used for pass/fail."""
        if not room.is_valid:
            return 0.0
        score = room.size * 10.0
        score += len(room.beds) * 50.0
        score += min(len(room.doors), DOOR_SCORE_CAP) * 20.0
        if room.is_sunbed_room:
            score += SUNBED_SCORE_BONUS
        score += room.price * 0.1
        return score

    def sort_by_quality(self, rooms: list[Room]) -> list[Room]:
        return sorted(rooms, key=self.quality_score, reverse=True)

    # === Diagnostics =======================================================

    @staticmethod
    def analyze_issues(invalid: list[Region]) -> dict[str, int]:
        """Histogram of failure kinds across *invalid* regions."""
        counts: Counter = Counter()
        for region in invalid:
            for reason in region.reasons:
                counts[_reason_kind(reason)] += 1
        return dict(counts)

    def validation_summary(self, report: ScanReport) -> str:
        total = report.valid_count + report.invalid_count
        if total == 0:
            return "No regions to validate."
        pct = report.valid_count / total * 100
        avg = (sum(self.quality_score(r) for r in report.valid_rooms) / report.valid_count
               if report.valid_count else 0.0)
        return (
            f"Validation: {total} regions, {report.valid_count} valid ({pct:.1f}%), "
            f"{report.invalid_count} invalid, {report.aborted_regions} aborted, "
            f"average quality {avg:.1f}"
        )
