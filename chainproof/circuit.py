"""
Circuit Definitions for chainproof.

A circuit is an immutable value: one fixed choice of capacity, per-slot
patterns, computations, assertions and output layout. Protocol constants
(addresses, event identifiers) are configuration fed into this value;
there is no per-protocol engine code and no shared mutable state.

Definitions are checked once, at construction. An inconsistent
definition raises CircuitDefinitionError before any evidence is seen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

from .aggregation.aggregator import Computation, Pick, Sum, referenced_names, value_bounds
from .aggregation.extractor import (
    DEFAULT_VALUE_WIDTH,
    Encoding,
    FieldValue,
    SlotValue,
    Stream,
    ValueSource,
)
from .domain import Allocation, Operand, ParameterError, Var
from .matching import (
    ArrayElement,
    FieldPattern,
    MappingKey,
    Predicate,
    ReceiptPattern,
    SlotPattern,
)
from .output import OutputField
from .thresholds import Assertion


class CircuitDefinitionError(Exception):
    """Raised when a circuit definition is inconsistent."""
    pass


@dataclass(frozen=True)
class ParamSpec:
    """
    A circuit parameter and its width.

    Parameters are unsigned unless `signed` is set, in which case the
    value must fit a two's-complement integer of the width.
    """
    name: str
    width: int = DEFAULT_VALUE_WIDTH
    signed: bool = False

    def check(self, value: int) -> int:
        """
        Raises:
            ParameterError: If value is not an int within the width
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ParameterError(f"Parameter '{self.name}' must be an int, got {value!r}")
        low, high = value_bounds(self.width, self.signed)
        if not low <= value <= high:
            kind = "int" if self.signed else "uint"
            raise ParameterError(f"Parameter '{self.name}' value {value} does not fit in {kind}{self.width}")
        return value


# =============================================================================
# REFERENCE COLLECTION
# =============================================================================

def _predicate_operands(predicate: Predicate) -> list[Operand]:
    expected = getattr(predicate, "expected", None)
    if expected is not None:
        return [expected]
    operands = []
    for child in getattr(predicate, "predicates", ()):
        operands += _predicate_operands(child)
    return operands


def _pattern_operands(pattern: Union[ReceiptPattern, SlotPattern]) -> list[Operand]:
    if isinstance(pattern, SlotPattern):
        operands = [pattern.contract, pattern.value]
        if isinstance(pattern.slot, MappingKey):
            operands.append(pattern.slot.key)
        elif isinstance(pattern.slot, ArrayElement):
            operands.append(pattern.slot.index)
        else:
            operands.append(pattern.slot)
        return [op for op in operands if op is not None]

    operands = []
    for field in pattern.fields:
        operands += [op for op in (field.contract, field.event_id, field.value) if op is not None]
    if pattern.where is not None:
        operands += _predicate_operands(pattern.where)
    return operands


# =============================================================================
# CIRCUIT
# =============================================================================

@dataclass(frozen=True)
class Circuit:
    """
    One verification-and-aggregation circuit.

    Patterns: a single pattern applies to every slot of its stream,
    otherwise one pattern per slot.
    """
    name: str
    allocation: Allocation
    params: tuple[ParamSpec, ...] = ()
    receipt_patterns: tuple[ReceiptPattern, ...] = ()
    slot_patterns: tuple[SlotPattern, ...] = ()
    computations: tuple[Computation, ...] = ()
    assertions: tuple[Assertion, ...] = ()
    outputs: tuple[OutputField, ...] = ()
    description: str = ""

    def __post_init__(self):
        """Validate the definition at construction time."""
        if not self.name:
            raise CircuitDefinitionError("Circuit name is required")
        self._validate_allocation()
        self._validate_patterns()
        self._validate_computations()
        self._validate_references()

    # -------------------------------------------------------------------------
    # Definition checks
    # -------------------------------------------------------------------------

    def _fail(self, reason: str) -> None:
        raise CircuitDefinitionError(f"{self.name}: {reason}")

    def _validate_allocation(self) -> None:
        if self.allocation.transactions:
            self._fail("transaction evidence is not supported; allocate 0 transactions")
        if self.allocation.receipts == 0 and self.allocation.storage_slots == 0:
            self._fail("circuit allocates no evidence")

    def _validate_patterns(self) -> None:
        streams = (
            ("receipt", self.receipt_patterns, self.allocation.receipts, ReceiptPattern),
            ("slot", self.slot_patterns, self.allocation.storage_slots, SlotPattern),
        )
        for label, patterns, capacity, expected_type in streams:
            if not isinstance(patterns, tuple):
                self._fail(f"{label}_patterns must be a tuple")
            if capacity == 0 and patterns:
                self._fail(f"{label} patterns declared for a stream with no capacity")
            if capacity and len(patterns) not in (1, capacity):
                self._fail(f"expected 1 or {capacity} {label} patterns, got {len(patterns)}")
            for pattern in patterns:
                if not isinstance(pattern, expected_type):
                    self._fail(f"{label} pattern must be {expected_type.__name__}")

        for pattern in self.receipt_patterns:
            if pattern.where is not None:
                out_of_range = [p for p in pattern.where.positions() if not 0 <= p < len(pattern.fields)]
                if out_of_range:
                    self._fail(f"predicate reads missing field positions {sorted(out_of_range)}")

        for pattern in self.receipt_patterns + self.slot_patterns:
            if any(isinstance(op, Var) for op in _pattern_operands(pattern)):
                self._fail("patterns may reference parameters, not computed values")

    def _field_patterns_at(self, position: int) -> list[FieldPattern]:
        result = []
        for pattern in self.receipt_patterns:
            if not 0 <= position < len(pattern.fields):
                self._fail(f"value source reads field {position}, pattern tracks {len(pattern.fields)}")
            result.append(pattern.fields[position])
        return result

    def _validate_source(self, source: ValueSource) -> None:
        capacity = (
            self.allocation.receipts if source.stream is Stream.RECEIPTS
            else self.allocation.storage_slots
        )
        if capacity == 0:
            self._fail(f"value source reads the empty {source.stream.value} stream")

        if isinstance(source, FieldValue):
            declared = self._field_patterns_at(source.position)
        elif isinstance(source, SlotValue):
            declared = list(self.slot_patterns)
        else:
            return

        if source.encoding in (Encoding.UINT, Encoding.ADDRESS) and any(p.signed for p in declared):
            self._fail(
                f"{source.encoding.value} extraction of a signed field is not allowed; "
                f"use INT or ABS_INT"
            )

    def _validate_computations(self) -> None:
        for computation in self.computations:
            source = getattr(computation, "source", None)
            if source is not None:
                self._validate_source(source)
            if isinstance(computation, Sum) and computation.source.encoding is Encoding.ADDRESS:
                self._fail(f"{computation.name}: addresses cannot be summed")
            if isinstance(computation, Pick):
                capacity = (
                    self.allocation.receipts if computation.source.stream is Stream.RECEIPTS
                    else self.allocation.storage_slots
                )
                if not -capacity <= computation.index < capacity:
                    self._fail(f"{computation.name}: index {computation.index} outside capacity {capacity}")

    def _validate_references(self) -> None:
        declared_params = [declared.name for declared in self.params]
        if len(set(declared_params)) != len(declared_params):
            self._fail("duplicate parameter names")

        defined: set[str] = set()

        def check(operands: Iterable[Operand], where: str) -> None:
            param_names, var_names = referenced_names(list(operands))
            unknown = param_names - set(declared_params)
            if unknown:
                self._fail(f"{where} references undeclared parameters {sorted(unknown)}")
            undefined = var_names - defined
            if undefined:
                self._fail(f"{where} references undefined values {sorted(undefined)}")

        for pattern in self.receipt_patterns + self.slot_patterns:
            check(_pattern_operands(pattern), "pattern")

        for computation in self.computations:
            if not computation.name:
                self._fail("computations must be named")
            if computation.name in defined:
                self._fail(f"duplicate computation name '{computation.name}'")
            check(computation.operands(), computation.name)
            defined.add(computation.name)

        for assertion in self.assertions:
            check(assertion.operands(), "assertion")
        for output in self.outputs:
            check((output.value,), "output")

    # -------------------------------------------------------------------------
    # Invocation helpers
    # -------------------------------------------------------------------------

    def check_params(self, params: Optional[Mapping[str, int]]) -> dict[str, int]:
        """
        Validate invocation parameters against the declaration.

        Raises:
            ParameterError: If a parameter is missing, unknown or too wide
        """
        params = dict(params or {})
        unknown = set(params) - {declared.name for declared in self.params}
        if unknown:
            raise ParameterError(f"Unknown parameters for {self.name}: {sorted(unknown)}")
        for declared in self.params:
            if declared.name not in params:
                raise ParameterError(f"Missing circuit parameter: {declared.name}")
            declared.check(params[declared.name])
        return params

    @property
    def output_widths(self) -> list[int]:
        return [output.width for output in self.outputs]

    @property
    def output_signed(self) -> list[bool]:
        return [output.signed for output in self.outputs]
