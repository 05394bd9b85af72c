"""Tests for room materialization, pricing and marker lifecycle."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from scanner.models import Region, ScanSettings
from scanner.room_factory import RoomFactory, RoomMarker, price_for, reputation_for, room_id_for
from tools.geometry import Bounds, Vec3


def _standard_region(level=1):
    base = (level - 1) * 4.6
    return Region(
        cells=frozenset((x, 0, z) for x in range(3) for z in range(3)),
        floor_level=level,
        bounds=Bounds(Vec3(-1.0, base, -1.0), Vec3(4.0, base + 4.0, 4.0)),
        walls=[f"w{i}" for i in range(15)],
        doors=["d0"],
        beds=["b0"],
        is_valid=True,
    )


def _sunbed_region():
    return Region(
        cells=frozenset({(20, 0, 20)}),
        floor_level=1,
        bounds=Bounds(Vec3(19.0, 0.0, 19.0), Vec3(22.0, 4.0, 22.0)),
        sunbeds=["s0"],
        is_sunbed=True,
        is_valid=True,
    )


def test_room_id_uses_rounded_center():
    """IDs round the horizontal center half-up."""
    assert room_id_for(_standard_region()) == "Room_F1_2_2"
    assert room_id_for(_standard_region(level=3)) == "Room_F3_2_2"
    assert room_id_for(_sunbed_region()) == "SunbedRoom_F1_21_21"

    negative = _standard_region()
    negative.bounds = Bounds(Vec3(-4.0, 0.0, -4.0), Vec3(-1.0, 4.0, -1.0))
    assert room_id_for(negative) == "Room_F1_-2_-2"
    print("  PASSED: room id uses rounded center")


def test_standard_pricing():
    room = RoomFactory(ScanSettings()).materialize(_standard_region())
    assert room.price == 100 + 9 * 10 + 1 * 50 + 1 * 20 + 15 * 2 + 1 * 25
    assert room.reputation == 50 + 18 + 10 + 5 + 0
    assert room.room_type == "StandardRoom"
    assert room.center == Vec3(1.5, 2.0, 1.5)
    assert room.marker is None, "materialize must not spawn"
    print("  PASSED: standard pricing")


def test_sunbed_pricing_is_fixed():
    settings = ScanSettings(sunbed_room_price=120.0, sunbed_room_reputation=40.0)
    room = RoomFactory(settings).materialize(_sunbed_region())
    assert room.is_sunbed_room
    assert room.price == 120.0 and room.reputation == 40.0
    assert room.sunbeds == ["s0"]
    print("  PASSED: sunbed pricing is fixed")


def test_pricing_is_monotonic():
    """More beds, doors or walls never lower price or reputation."""
    for doors in range(6):
        assert price_for(9, 1, doors + 1, 12, 1) > price_for(9, 1, doors, 12, 1)
        assert reputation_for(9, 1, doors + 1, 1) >= reputation_for(9, 1, doors, 1)
    assert price_for(9, 2, 1, 12, 1) > price_for(9, 1, 1, 12, 1)
    assert reputation_for(9, 2, 1, 1) > reputation_for(9, 1, 1, 1)
    assert price_for(9, 1, 1, 13, 1) > price_for(9, 1, 1, 12, 1)
    assert reputation_for(100, 1, 1, 1) == reputation_for(25, 1, 1, 1), "Size bonus caps at 50"
    print("  PASSED: pricing is monotonic")


def test_spawn_creates_marker_and_calls_hook():
    spawned = []
    factory = RoomFactory(ScanSettings(), on_spawn=lambda room, marker: spawned.append(marker))
    room = factory.materialize(_standard_region())
    marker = factory.spawn(room)

    assert isinstance(marker, RoomMarker)
    assert room.marker is marker
    assert marker.name == "Room_F1_2_2"
    assert marker.room_type == "StandardRoom"
    assert marker.size == Vec3(5.0, 4.0, 5.0)
    assert "price 315" in marker.info
    assert spawned == [marker]
    print("  PASSED: spawn creates marker and calls hook")


def test_teardown_is_idempotent():
    despawned = []
    factory = RoomFactory(ScanSettings(), on_despawn=lambda room, marker: despawned.append(marker))
    room = factory.materialize(_standard_region())
    marker = factory.spawn(room)

    factory.teardown(room)
    factory.teardown(room)
    assert despawned == [marker], "Hook must run exactly once"
    assert room.marker is None
    assert marker.alive is False
    print("  PASSED: teardown is idempotent")


def test_teardown_without_marker_is_noop():
    factory = RoomFactory(ScanSettings())
    room = factory.materialize(_standard_region())
    factory.teardown(room)
    assert room.marker is None
    print("  PASSED: teardown without marker is a no-op")


def test_hook_failures_do_not_raise():
    def boom(room, marker):
        raise RuntimeError("host went away")

    factory = RoomFactory(ScanSettings(), on_spawn=boom, on_despawn=boom)
    room = factory.materialize(_standard_region())
    factory.spawn(room)
    factory.teardown(room)
    assert room.marker is None
    print("  PASSED: hook failures do not raise")


if __name__ == "__main__":
    print("Running room factory tests...\n")
    tests = [
        test_room_id_uses_rounded_center,
        test_standard_pricing,
        test_sunbed_pricing_is_fixed,
        test_pricing_is_monotonic,
        test_spawn_creates_marker_and_calls_hook,
        test_teardown_is_idempotent,
        test_teardown_without_marker_is_noop,
        test_hook_failures_do_not_raise,
    ]

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  FAILED: {test.__name__}: {e}")
            failed += 1

    print(f"\n{'='*50}")
    print(f"Results: {passed} passed, {failed} failed, {len(tests)} total")
    if failed == 0:
        print("ALL TESTS PASSED")
    else:
        print(f"{failed} TEST(S) FAILED")
