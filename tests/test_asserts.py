"""Tests for the assertion helpers."""

import pytest

from gametest import asserts
from gametest.core.errors import AssertionFailure


class TestBasicChecks:
    """Tests for truth, equality and None checks."""

    def test_passing_checks(self):
        """Test that satisfied checks return quietly."""
        asserts.is_true(1)
        asserts.is_false([])
        asserts.are_equal("a", "a")
        asserts.are_not_equal(1, 2)
        asserts.is_none(None)
        asserts.is_not_none(0)

    def test_fail(self):
        """Test that fail always raises with the given message."""
        with pytest.raises(AssertionFailure, match="boom"):
            asserts.fail("boom")

    def test_is_true_message(self):
        """Test that a custom message replaces the default."""
        with pytest.raises(AssertionFailure, match="^player is dead$"):
            asserts.is_true(False, "player is dead")

    def test_are_equal_message(self):
        """Test that both values and the custom message are reported."""
        with pytest.raises(AssertionFailure) as exc_info:
            asserts.are_equal(3, 4, "health")
        assert str(exc_info.value) == "3 != 4, health"

    def test_is_none(self):
        """Test that a value is rejected by is_none."""
        with pytest.raises(AssertionFailure):
            asserts.is_none("value")
        with pytest.raises(AssertionFailure):
            asserts.is_not_none(None)

    def test_is_an_assertion_error(self):
        """Test that failures can be caught as AssertionError."""
        with pytest.raises(AssertionError):
            asserts.are_not_equal(1, 1)


class TestApproximateChecks:
    """Tests for tolerance-based checks."""

    def test_within_default_tolerance(self):
        """Test that tiny differences are tolerated."""
        asserts.are_approximately_equal(1.0, 1.000001)

    def test_outside_tolerance(self):
        """Test that larger differences fail."""
        with pytest.raises(AssertionFailure):
            asserts.are_approximately_equal(1.0, 1.1)

    def test_custom_tolerance(self):
        """Test a custom tolerance."""
        asserts.are_approximately_equal(1.0, 1.1, tolerance=0.2)
        asserts.are_not_approximately_equal(1.0, 1.1, tolerance=0.05)
        with pytest.raises(AssertionFailure):
            asserts.are_not_approximately_equal(1.0, 1.1, tolerance=0.2)

    def test_negative_tolerance(self):
        """Test that a negative tolerance is a usage error."""
        with pytest.raises(ValueError):
            asserts.are_approximately_equal(1.0, 1.0, tolerance=-1)
        with pytest.raises(ValueError):
            asserts.is_less_approximately_equal(1.0, 1.0, tolerance=-1)


class TestOrderingChecks:
    """Tests for comparison checks."""

    def test_greater(self):
        """Test greater-than checks."""
        asserts.is_greater(2, 1)
        asserts.is_greater_equal(2, 2)
        with pytest.raises(AssertionFailure):
            asserts.is_greater(2, 2)
        with pytest.raises(AssertionFailure):
            asserts.is_greater_equal(1, 2)

    def test_less(self):
        """Test less-than checks."""
        asserts.is_less(1, 2)
        asserts.is_less_equal(2, 2)
        with pytest.raises(AssertionFailure):
            asserts.is_less(2, 2)
        with pytest.raises(AssertionFailure):
            asserts.is_less_equal(3, 2)

    def test_approximately_ordered(self):
        """Test ordering checks that tolerate small differences."""
        asserts.is_greater_approximately_equal(0.999999, 1.0)
        asserts.is_less_approximately_equal(1.000001, 1.0)
        with pytest.raises(AssertionFailure):
            asserts.is_greater_approximately_equal(0.9, 1.0)
        with pytest.raises(AssertionFailure):
            asserts.is_less_approximately_equal(1.1, 1.0)
