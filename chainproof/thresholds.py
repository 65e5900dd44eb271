"""
Threshold Assertions for chainproof.

The canonical direction is `threshold <= observed`: prove "at least this
much activity" without revealing more than the circuit outputs.

Two variants:
    AtLeast - one-sided, threshold <= observed
    Within  - two-sided, minimum <= observed <= maximum (bounded ranges
              such as price oracles)

An unmet bound is a correct negative result, not a bug, but it still
fails the whole invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence, Union

from .domain import Operand, ThresholdUnmet, resolve


def assert_at_least(observed: int, threshold: int, label: str = "observed") -> None:
    """
    Raises:
        ThresholdUnmet: If observed < threshold
    """
    if not threshold <= observed:
        raise ThresholdUnmet(f"{label} {observed} is below threshold {threshold}")


def assert_within(observed: int, minimum: int, maximum: int, label: str = "observed") -> None:
    """
    Raises:
        ThresholdUnmet: If observed is outside [minimum, maximum]
    """
    if not minimum <= observed:
        raise ThresholdUnmet(f"{label} {observed} is below minimum {minimum}")
    if not observed <= maximum:
        raise ThresholdUnmet(f"{label} {observed} is above maximum {maximum}")


# =============================================================================
# DECLARATIONS
# =============================================================================

@dataclass(frozen=True)
class AtLeast:
    observed: Operand
    threshold: Operand

    def operands(self) -> tuple[Operand, ...]:
        return (self.observed, self.threshold)

    def check(self, params: Mapping[str, int], values: Mapping[str, int]) -> None:
        assert_at_least(
            resolve(self.observed, params, values),
            resolve(self.threshold, params, values),
            label=_label(self.observed),
        )


@dataclass(frozen=True)
class Within:
    observed: Operand
    minimum: Operand
    maximum: Operand

    def operands(self) -> tuple[Operand, ...]:
        return (self.observed, self.minimum, self.maximum)

    def check(self, params: Mapping[str, int], values: Mapping[str, int]) -> None:
        assert_within(
            resolve(self.observed, params, values),
            resolve(self.minimum, params, values),
            resolve(self.maximum, params, values),
            label=_label(self.observed),
        )


Assertion = Union[AtLeast, Within]


def _label(operand: Operand) -> str:
    return getattr(operand, "name", "observed")


def check_assertions(
    assertions: Sequence[Assertion],
    params: Mapping[str, int],
    values: Mapping[str, int],
) -> None:
    """Check every assertion in order; the first unmet one fails."""
    for assertion in assertions:
        assertion.check(params, values)
