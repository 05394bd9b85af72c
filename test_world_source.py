"""Tests for world collaborators and geometry helpers."""
import json
import os
import sys
import tempfile
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tools.geometry import Bounds, FloorScale, Vec3, round_half_up
from tools.world_source import InMemoryWorld, load_world


def test_round_half_up():
    assert round_half_up(1.5) == 2
    assert round_half_up(2.5) == 3, "Not banker's rounding"
    assert round_half_up(-2.5) == -2
    assert round_half_up(-2.6) == -3
    print("  PASSED: round_half_up")


def test_floor_scale():
    scale = FloorScale(floor_height=4.6, room_height=4.0)
    assert scale.level_of(0.0) == 1
    assert scale.level_of(4.5) == 1
    assert scale.level_of(4.6) == 2
    assert scale.level_of(-0.1) == 0
    assert scale.base_y(3) == 2 * 4.6
    print("  PASSED: floor scale")


def test_bounds_distance():
    box = Bounds(Vec3(0.0, 0.0, 0.0), Vec3(2.0, 2.0, 2.0))
    assert box.distance_to((1.0, 1.0, 1.0)) == 0.0
    assert box.distance_to((5.0, 1.0, 1.0)) == 3.0
    assert box.center == Vec3(1.0, 1.0, 1.0)
    assert box.size == Vec3(2.0, 2.0, 2.0)
    print("  PASSED: bounds distance")


def test_in_memory_world_queries():
    world = InMemoryWorld([("w1", "Wall", (0.5, 0, 0.5)), ("f1", "Floor", [1.5, 0, 0.5])])
    assert world.get_objects("Wall") == [("w1", Vec3(0.5, 0.0, 0.5))]
    assert world.get_objects("Door") == []
    assert world.query_count == 2
    assert world.remove("w1")
    assert not world.remove("w1")
    assert len(world) == 1
    print("  PASSED: in-memory world queries")


def test_unknown_tag_is_rejected():
    world = InMemoryWorld()
    try:
        world.add("x", "Window", (0, 0, 0))
    except ValueError as e:
        assert "Window" in str(e)
    else:
        raise AssertionError("Expected ValueError")
    print("  PASSED: unknown tag is rejected")


def test_placement_floors():
    world = InMemoryWorld(active_floor=1, active_floors=[1, 3])
    assert world.active_floor() == 1
    assert world.is_floor_active(3)
    assert not world.is_floor_active(2)
    world.set_active_floor(2)
    assert world.active_floor() == 2 and world.is_floor_active(2)
    assert world.floor_level_of(5.0) == 2
    print("  PASSED: placement floors")


def test_load_world():
    data = {
        "objects": [
            {"id": "f1", "tag": "Floor", "position": [0.5, 0.0, 0.5]},
            {"tag": "Wall", "position": [1.5, 0.0, 0.5]},
        ],
        "active_floor": 2,
        "active_floors": [1, 2],
    }
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "world.json")
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        world = load_world(path)

    assert len(world) == 2
    assert world.active_floor() == 2
    assert world.get_objects("Wall") == [("obj_1", Vec3(1.5, 0.0, 0.5))]
    assert [h for h, _, _ in world.items()] == ["f1", "obj_1"]
    print("  PASSED: load_world")


if __name__ == "__main__":
    print("Running world source tests...\n")
    tests = [
        test_round_half_up,
        test_floor_scale,
        test_bounds_distance,
        test_in_memory_world_queries,
        test_unknown_tag_is_rejected,
        test_placement_floors,
        test_load_world,
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
