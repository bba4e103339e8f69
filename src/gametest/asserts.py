"""Assertion helpers for test bodies.

Every helper raises AssertionFailure on failure. Raising inside a test body
fails the executing test; the message ends up in its failure list.
"""

from typing import Any

from gametest.core.errors import AssertionFailure

TOLERANCE = 0.00001


def _raise(final: str, message: str = "") -> None:
    if message:
        final = f"{final}, {message}" if final else message
    raise AssertionFailure(final)


def _check_tolerance(tolerance: float) -> None:
    if tolerance < 0:
        raise ValueError(f"tolerance argument cannot be < 0, but got {tolerance}")


def fail(message: str = "") -> None:
    """Fail unconditionally."""
    raise AssertionFailure(message)


def is_true(condition: Any, message: str = "") -> None:
    """Assert that condition is truthy."""
    if not condition:
        _raise("", message or "condition is not true")


def is_false(condition: Any, message: str = "") -> None:
    """Assert that condition is falsy."""
    if condition:
        _raise("", message or "condition is not false")


def are_equal(expected: Any, actual: Any, message: str = "") -> None:
    """Assert that expected == actual."""
    if not expected == actual:
        _raise(f"{expected!r} != {actual!r}", message)


def are_not_equal(expected: Any, actual: Any, message: str = "") -> None:
    """Assert that expected != actual."""
    if expected == actual:
        _raise(f"{expected!r} == {actual!r}", message)


def is_none(value: Any, message: str = "") -> None:
    """Assert that value is None."""
    if value is not None:
        _raise(f"{value!r} is not None", message)


def is_not_none(value: Any, message: str = "") -> None:
    """Assert that value is not None."""
    if value is None:
        _raise("value is None", message)


def are_approximately_equal(
    expected: float,
    actual: float,
    tolerance: float = TOLERANCE,
    message: str = "",
) -> None:
    """Assert that |expected - actual| <= tolerance.

    Raises:
        ValueError: If tolerance is negative
    """
    _check_tolerance(tolerance)
    if not abs(expected - actual) <= tolerance:
        _raise(f"|{expected} - {actual}| > {tolerance}", message)


def are_not_approximately_equal(
    expected: float,
    actual: float,
    tolerance: float = TOLERANCE,
    message: str = "",
) -> None:
    """Assert that |expected - actual| > tolerance.

    Raises:
        ValueError: If tolerance is negative
    """
    _check_tolerance(tolerance)
    if abs(expected - actual) <= tolerance:
        _raise(f"|{expected} - {actual}| <= {tolerance}", message)


def is_greater(value: float, other: float, message: str = "") -> None:
    """Assert that value > other."""
    if not value > other:
        _raise(f"{value} <= {other}", message)


def is_greater_equal(value: float, other: float, message: str = "") -> None:
    """Assert that value >= other."""
    if not value >= other:
        _raise(f"{value} < {other}", message)


def is_greater_approximately_equal(
    value: float,
    other: float,
    tolerance: float = TOLERANCE,
    message: str = "",
) -> None:
    """Assert that value >= other, or that the two are within tolerance."""
    _check_tolerance(tolerance)
    if not (value >= other or abs(value - other) <= tolerance):
        _raise(f"{value} < {other} and |{value} - {other}| > {tolerance}", message)


def is_less(value: float, other: float, message: str = "") -> None:
    """Assert that value < other."""
    if not value < other:
        _raise(f"{value} >= {other}", message)


def is_less_equal(value: float, other: float, message: str = "") -> None:
    """Assert that value <= other."""
    if not value <= other:
        _raise(f"{value} > {other}", message)


def is_less_approximately_equal(
    value: float,
    other: float,
    tolerance: float = TOLERANCE,
    message: str = "",
) -> None:
    """Assert that value <= other, or that the two are within tolerance."""
    _check_tolerance(tolerance)
    if not (value <= other or abs(value - other) <= tolerance):
        _raise(f"{value} > {other} and |{value} - {other}| > {tolerance}", message)
