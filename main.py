"""RoomScan - room recognition for player-built hotels

Scan a world snapshot from the command line and print the recognised rooms.

Usage:
    python main.py world.json                  # Scan the active floor
    python main.py world.json --all-floors     # Scan every floor
    python main.py world.json --watch 2        # Rescan every 2 seconds
"""

import argparse
import logging
import os
import sys
import time

# Load ROOMSCAN_* overrides from .env before config is imported
try:
    from dotenv import load_dotenv
    _env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
    load_dotenv(_env_path, override=True)
except ImportError:
    # python-dotenv not installed; settings come from the environment only
    pass

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main():
    parser = argparse.ArgumentParser(
        description="RoomScan - detect rooms in a world snapshot"
    )
    parser.add_argument("world", help="Path to a world JSON file.")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--floor",
        type=int,
        default=None,
        help="Scan only this floor (must be active in the world file).",
    )
    scope.add_argument(
        "--all-floors",
        action="store_true",
        help="Scan every floor instead of the active one.",
    )
    parser.add_argument(
        "--watch",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Keep rescanning the file at this interval until interrupted.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(_run(args))


def _run(args) -> int:
    from scanner.detector import RoomDetector
    from scanner.events import RoomAdded, RoomRemoved
    from scanner.models import ScanSettings
    from tools.world_source import load_world

    try:
        world = load_world(args.world)
    except (OSError, ValueError, KeyError) as e:
        print(f"[ERROR] Could not load {args.world}: {e}")
        return 1

    settings = ScanSettings(scan_all_floors=args.all_floors)
    detector = RoomDetector(world, placement=world, settings=settings)

    if args.floor is not None and not detector.set_scan_floor(args.floor):
        print(f"[ERROR] Floor {args.floor} is not active in {args.world}")
        detector.close()
        return 1

    detector.bus.subscribe(RoomAdded, lambda e: print(f"[ADDED] {e.room.room_id}"))
    detector.bus.subscribe(RoomRemoved, lambda e: print(f"[REMOVED] {e.room.room_id}"))

    try:
        detector.scan_now()
        _print_results(detector)
        if args.watch:
            while True:
                time.sleep(args.watch)
                _reload(world, args.world)
                detector.cache.invalidate()
                detector.scan_now()
                print(detector.get_scan_info())
    except KeyboardInterrupt:
        pass
    finally:
        detector.close()

    report = detector.last_report
    return 0 if report is not None and report.status == "completed" else 2


def _reload(world, path: str):
    from tools.world_source import load_world

    fresh = load_world(path)
    world.clear()
    for handle, tag, position in fresh.items():
        world.add(handle, tag, position)


def _print_results(detector):
    rooms = detector.repository.get_all()
    print(f"\n=== Rooms ({len(rooms)}) ===")
    for room in rooms:
        print(f"  {room.summary()}")

    report = detector.last_report
    if report is not None and report.invalid_regions:
        print(f"\n=== Invalid regions ({report.invalid_count}) ===")
        for region in report.invalid_regions:
            print(f"  at {region.anchor}, {region.size} cells: {'; '.join(region.reasons)}")
        issues = detector.validator.analyze_issues(report.invalid_regions)
        print("  " + ", ".join(f"{kind}: {n}" for kind, n in sorted(issues.items())))

    if report is not None:
        print(f"\n{detector.validator.validation_summary(report)}")
    print(f"\n=== Statistics ===\n{detector.repository.statistics()}")


if __name__ == "__main__":
    main()
