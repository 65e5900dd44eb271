"""
Aggregator for chainproof.

Core principle:
    Arithmetic is exact and width-checked. A result that does not fit its
    declared width raises Overflow; nothing ever wraps or truncates.

Because addition over integers is exact, the final sum does not depend
on accumulation order.

Computations run in declaration order and each one names its result, so
later computations, assertions and outputs can refer to it via Var.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence, Union

from ..domain import Batch, Operand, Overflow, Param, Var, resolve
from .extractor import (
    BLOCK_NUMBER_WIDTH,
    DEFAULT_VALUE_WIDTH,
    Stream,
    ValueSource,
    extract_all,
    select,
    stream_records,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CHECKED ARITHMETIC
# =============================================================================

def value_bounds(width: int, signed: bool = False) -> tuple[int, int]:
    """Inclusive (low, high) range of a width."""
    if signed:
        return -(1 << (width - 1)), (1 << (width - 1)) - 1
    return 0, (1 << width) - 1


def check_width(value: int, width: int, signed: bool = False, label: str = "value") -> int:
    """
    Raises:
        Overflow: If value is outside the range of the width
    """
    low, high = value_bounds(width, signed)
    if not low <= value <= high:
        kind = "int" if signed else "uint"
        raise Overflow(f"{label} {value} does not fit in {kind}{width}")
    return value


def checked_add(a: int, b: int, width: int = DEFAULT_VALUE_WIDTH, signed: bool = False) -> int:
    check_width(a, width, signed, "operand")
    check_width(b, width, signed, "operand")
    return check_width(a + b, width, signed, "sum")


def checked_sub(a: int, b: int, width: int = DEFAULT_VALUE_WIDTH, signed: bool = False) -> int:
    check_width(a, width, signed, "operand")
    check_width(b, width, signed, "operand")
    return check_width(a - b, width, signed, "difference")


# =============================================================================
# AGGREGATE RESULT
# =============================================================================

@dataclass(frozen=True)
class AggregateResult:
    """
    Reduction of a validated stream.

    `count` always equals the batch capacity: every record passed
    validation, none were excluded.
    """
    sum: int
    count: int


def aggregate(
    values: Sequence[int],
    width: int = DEFAULT_VALUE_WIDTH,
    signed: bool = False,
) -> AggregateResult:
    """
    Sum and count extracted values.

    Raises:
        Overflow: If any partial sum leaves the width
    """
    total = 0
    for value in values:
        total = checked_add(total, value, width, signed)
    return AggregateResult(sum=total, count=len(values))


# =============================================================================
# COMPUTATIONS
# =============================================================================

@dataclass(frozen=True)
class Sum:
    """Checked sum of a value source over its whole stream."""
    name: str
    source: ValueSource
    width: int = DEFAULT_VALUE_WIDTH

    def operands(self) -> tuple[Operand, ...]:
        return ()

    def evaluate(self, batch: Batch, params: Mapping[str, int], values: Mapping[str, int]) -> int:
        return aggregate(extract_all(batch, self.source), self.width, self.source.signed).sum


@dataclass(frozen=True)
class Count:
    """Number of records in a stream."""
    name: str
    stream: Stream
    width: int = BLOCK_NUMBER_WIDTH

    def operands(self) -> tuple[Operand, ...]:
        return ()

    def evaluate(self, batch: Batch, params: Mapping[str, int], values: Mapping[str, int]) -> int:
        return check_width(len(stream_records(batch, self.stream)), self.width, label="count")


@dataclass(frozen=True)
class Pick:
    """The value of one slot, by index (negative counts from the end)."""
    name: str
    source: ValueSource
    index: int

    def operands(self) -> tuple[Operand, ...]:
        return ()

    def evaluate(self, batch: Batch, params: Mapping[str, int], values: Mapping[str, int]) -> int:
        return select(extract_all(batch, self.source), self.index)


@dataclass(frozen=True)
class Add:
    """Checked sum of named values, parameters or constants."""
    name: str
    terms: tuple[Operand, ...]
    width: int = DEFAULT_VALUE_WIDTH
    signed: bool = False

    def operands(self) -> tuple[Operand, ...]:
        return self.terms

    def evaluate(self, batch: Batch, params: Mapping[str, int], values: Mapping[str, int]) -> int:
        total = 0
        for term in self.terms:
            total = checked_add(total, resolve(term, params, values), self.width, self.signed)
        return total


@dataclass(frozen=True)
class Sub:
    """Checked difference; an unsigned result below zero is an Overflow."""
    name: str
    minuend: Operand
    subtrahend: Operand
    width: int = DEFAULT_VALUE_WIDTH
    signed: bool = False

    def operands(self) -> tuple[Operand, ...]:
        return (self.minuend, self.subtrahend)

    def evaluate(self, batch: Batch, params: Mapping[str, int], values: Mapping[str, int]) -> int:
        return checked_sub(
            resolve(self.minuend, params, values),
            resolve(self.subtrahend, params, values),
            self.width,
            self.signed,
        )


Computation = Union[Sum, Count, Pick, Add, Sub]


def compute(
    computations: Sequence[Computation],
    batch: Batch,
    params: Mapping[str, int],
) -> dict[str, int]:
    """
    Run computations in order over a validated batch.

    Returns:
        Computed values by name, in declaration order
    """
    values: dict[str, int] = {}
    for computation in computations:
        values[computation.name] = computation.evaluate(batch, params, values)
        logger.debug(f"{computation.name} = {values[computation.name]}")
    return values


def referenced_names(operands: Sequence[Operand]) -> tuple[set[str], set[str]]:
    """Split operands into (parameter names, computed value names)."""
    params = {op.name for op in operands if isinstance(op, Param)}
    variables = {op.name for op in operands if isinstance(op, Var)}
    return params, variables
