"""Tests for the synchronous event bus."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from scanner.events import EventBus, FloorChanged, RoomAdded, RoomRemoved


def test_handlers_run_in_subscription_order():
    bus = EventBus()
    calls = []
    bus.subscribe(RoomAdded, lambda e: calls.append(("first", e.room)))
    bus.subscribe(RoomAdded, lambda e: calls.append(("second", e.room)))
    delivered = bus.publish(RoomAdded("r1"))
    assert calls == [("first", "r1"), ("second", "r1")]
    assert delivered == 2
    print("  PASSED: handlers run in subscription order")


def test_events_are_routed_by_type():
    bus = EventBus()
    added, removed = [], []
    bus.subscribe(RoomAdded, added.append)
    bus.subscribe(RoomRemoved, removed.append)
    bus.publish(RoomRemoved("r1"))
    assert added == []
    assert removed == [RoomRemoved("r1")]
    print("  PASSED: events are routed by type")


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise ValueError("handler bug")

    bus.subscribe(FloorChanged, broken)
    bus.subscribe(FloorChanged, seen.append)
    bus.publish(FloorChanged("Placement", 2))
    assert seen == [FloorChanged("Placement", 2)]
    print("  PASSED: failing handler does not stop others")


def test_unsubscribe_is_idempotent():
    bus = EventBus()
    seen = []
    sub = bus.subscribe(RoomAdded, seen.append)
    sub.unsubscribe()
    sub.unsubscribe()
    bus.publish(RoomAdded("r1"))
    assert seen == []
    assert bus.subscriber_count(RoomAdded) == 0
    print("  PASSED: unsubscribe is idempotent")


def test_subscription_as_context_manager():
    bus = EventBus()
    seen = []
    with bus.subscribe(RoomAdded, seen.append):
        bus.publish(RoomAdded("inside"))
    bus.publish(RoomAdded("outside"))
    assert [e.room for e in seen] == ["inside"]
    print("  PASSED: subscription as context manager")


def test_unsubscribe_during_publish():
    """A handler removed mid-publish is not called afterwards."""
    bus = EventBus()
    seen = []
    later = None

    def first(event):
        later.unsubscribe()

    bus.subscribe(RoomAdded, first)
    later = bus.subscribe(RoomAdded, seen.append)
    bus.publish(RoomAdded("r1"))
    assert seen == []
    print("  PASSED: unsubscribe during publish")


def test_clear_drops_all_subscribers():
    bus = EventBus()
    seen = []
    sub = bus.subscribe(RoomAdded, seen.append)
    bus.subscribe(RoomRemoved, seen.append)
    bus.clear()
    bus.publish(RoomAdded("r1"))
    bus.publish(RoomRemoved("r1"))
    assert seen == []
    assert not sub.active
    sub.unsubscribe()
    print("  PASSED: clear drops all subscribers")


if __name__ == "__main__":
    print("Running event bus tests...\n")
    tests = [
        test_handlers_run_in_subscription_order,
        test_events_are_routed_by_type,
        test_failing_handler_does_not_stop_others,
        test_unsubscribe_is_idempotent,
        test_subscription_as_context_manager,
        test_unsubscribe_during_publish,
        test_clear_drops_all_subscribers,
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
