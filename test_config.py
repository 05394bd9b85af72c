"""Tests for environment overrides of configuration defaults."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import config


def _with_env(name, value, fn):
    key = f"ROOMSCAN_{name}"
    old = os.environ.get(key)
    os.environ[key] = value
    try:
        return fn()
    finally:
        if old is None:
            del os.environ[key]
        else:
            os.environ[key] = old


def test_valid_overrides_are_used():
    assert _with_env("TEST_INT", "300", lambda: config._env_int("TEST_INT", 200)) == 300
    assert _with_env("TEST_FLOAT", "2.5", lambda: config._env_float("TEST_FLOAT", 1.0)) == 2.5
    assert _with_env("TEST_BOOL", "yes", lambda: config._env_bool("TEST_BOOL", False)) is True
    print("  PASSED: valid overrides are used")


def test_missing_override_uses_default():
    os.environ.pop("ROOMSCAN_TEST_MISSING", None)
    assert config._env_int("TEST_MISSING", 7) == 7
    assert config._env_float("TEST_MISSING", 0.5) == 0.5
    print("  PASSED: missing override uses default")


def test_malformed_override_falls_back():
    """A bad value is logged and ignored instead of failing the import."""
    assert _with_env("TEST_INT", "lots", lambda: config._env_int("TEST_INT", 200)) == 200
    assert _with_env("TEST_INT", "2.5", lambda: config._env_int("TEST_INT", 200)) == 200
    assert _with_env("TEST_FLOAT", "fast", lambda: config._env_float("TEST_FLOAT", 2.0)) == 2.0
    print("  PASSED: malformed override falls back")


if __name__ == "__main__":
    print("Running config tests...\n")
    tests = [
        test_valid_overrides_are_used,
        test_missing_override_uses_default,
        test_malformed_override_falls_back,
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
