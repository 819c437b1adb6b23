"""Utility helpers for lightweight test execution without pytest.

Provides assertion helpers, a shared tier table and file utilities so test
modules can run under the plain runner as well as under pytest."""

import json
import math
import os

from stake_tiers.tiers import load_tiers

# Three-tier table used throughout the suite: A up to 1%, B up to 5%, C the rest
SAMPLE_TIER_RECORDS = [
    {"tier": "c", "tier_name": "Gold", "weight": "2.0", "staked_up_to_percent": "100.0"},
    {"tier": "a", "tier_name": "Bronze", "weight": "1.0", "staked_up_to_percent": "1.0"},
    {"tier": "b", "tier_name": "Silver", "weight": "1.5", "staked_up_to_percent": "5.0"},
]

POOL = "1000.00000000 TOK"


def sample_tiers():
    """Validated, sorted copy of the sample tier table."""
    return load_tiers(SAMPLE_TIER_RECORDS)


def assert_close(actual, expected, rel: float = 1e-4, msg: str = ""):
    """Assert that two numeric values are approximately equal.

    Accepts floats or Decimals; Decimals are compared as floats, so use
    exact equality where the fixed-point value itself matters.
    """
    actual, expected = float(actual), float(expected)
    if not math.isclose(actual, expected, rel_tol=rel, abs_tol=1e-12):
        suffix = f" ({msg})" if msg else ""  # Optional context message
        raise AssertionError(f"Expected {expected} ± {rel}, got {actual}{suffix}")


def expect_raises(exception, func, *args, **kwargs):
    """Assert that a function raises a specific exception.

    Used to test validation in the tier loader, configuration and snapshot
    readers.
    """
    try:
        func(*args, **kwargs)  # Execute function with provided arguments
    except exception:
        return  # Expected exception was raised - test passes
    raise AssertionError(f"Expected {exception.__name__} to be raised")


def file_exists(path: str) -> bool:
    """Check if a file exists at the given path."""
    return os.path.exists(path)


def write_json(directory: str, name: str, data) -> str:
    """Write ``data`` as JSON under ``directory`` and return the path."""
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(data, handle, default=str)
    return path
