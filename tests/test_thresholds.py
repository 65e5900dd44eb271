"""
Tests for the Threshold Asserter.

The canonical direction is threshold <= observed; equality passes.
"""

import pytest

from chainproof.domain import FailureRule, Param, ParameterError, ThresholdUnmet, Var
from chainproof.thresholds import (
    AtLeast,
    Within,
    assert_at_least,
    assert_within,
    check_assertions,
)


class TestAtLeast:
    """Test one-sided bounds."""

    def test_above_threshold(self):
        assert_at_least(150_000000, 100_000000)

    def test_equal_passes(self):
        assert_at_least(100, 100)

    def test_below_threshold(self):
        with pytest.raises(ThresholdUnmet, match="below threshold") as excinfo:
            assert_at_least(99, 100)
        assert excinfo.value.rule == FailureRule.THRESHOLD_UNMET

    def test_declaration_resolves_references(self):
        assertion = AtLeast(Var("total"), Param("min_volume"))
        assertion.check({"min_volume": 10}, {"total": 10})
        with pytest.raises(ThresholdUnmet, match="total 9"):
            assertion.check({"min_volume": 10}, {"total": 9})

    def test_missing_threshold_parameter(self):
        with pytest.raises(ParameterError):
            AtLeast(Var("total"), Param("min_volume")).check({}, {"total": 10})


class TestWithin:
    """Test two-sided bounds."""

    def test_inside_range(self):
        assert_within(5, 1, 10)
        assert_within(1, 1, 10)
        assert_within(10, 1, 10)

    def test_below_minimum(self):
        with pytest.raises(ThresholdUnmet, match="below minimum"):
            assert_within(0, 1, 10)

    def test_above_maximum(self):
        with pytest.raises(ThresholdUnmet, match="above maximum"):
            assert_within(11, 1, 10)

    def test_declaration(self):
        Within(Var("delta"), 1, Param("max")).check({"max": 10}, {"delta": 10})


class TestCheckAssertions:

    def test_all_must_hold(self):
        assertions = [AtLeast(Var("a"), 1), AtLeast(Var("b"), 1)]
        check_assertions(assertions, {}, {"a": 1, "b": 1})
        with pytest.raises(ThresholdUnmet, match="b 0"):
            check_assertions(assertions, {}, {"a": 1, "b": 0})
