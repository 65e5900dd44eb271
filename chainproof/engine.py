"""
Invocation Engine for chainproof.

Ties the components together into a single execution flow:

    UNINITIALIZED → BATCH_LOADED → VALIDATED → AGGREGATED
                  → ASSERTED → OUTPUT_ENCODED → DONE

Any exception raised by a step moves the invocation to FAILED. A failed
invocation never produces partial output and is never retried; the caller
submits a new invocation with different evidence.

Each invocation owns its batch and intermediate values. Concurrent
invocations share nothing but the immutable circuit definition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional

from .circuit import Circuit
from .domain import Batch, Failure, VerificationError, resolve
from .aggregation.aggregator import compute
from .output import encode_output
from .thresholds import check_assertions
from .validation import validate_batch

logger = logging.getLogger(__name__)


class InvocationState(Enum):
    UNINITIALIZED = "uninitialized"
    BATCH_LOADED = "batch_loaded"
    VALIDATED = "validated"
    AGGREGATED = "aggregated"
    ASSERTED = "asserted"
    OUTPUT_ENCODED = "output_encoded"
    DONE = "done"
    FAILED = "failed"


class InvocationStateError(Exception):
    """Raised when an invocation step is called out of order."""
    pass


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class CircuitOutput:
    """
    Public output of a successful invocation.

    `buffer` is the fixed-layout encoding of `values`; `computed` holds
    every named intermediate for audit.
    """
    circuit_name: str
    buffer: bytes
    values: tuple[int, ...]
    computed: Mapping[str, int]

    def hex(self) -> str:
        return "0x" + self.buffer.hex()


@dataclass(frozen=True)
class VerificationResult:
    """Either accepted with an output, or rejected with a Failure."""
    accepted: bool
    output: Optional[CircuitOutput] = None
    failure: Optional[Failure] = None


# =============================================================================
# INVOCATION
# =============================================================================

class Invocation:
    """One run of a circuit over one batch."""

    def __init__(self, circuit: Circuit, params: Optional[Mapping[str, int]] = None):
        self.circuit = circuit
        self.raw_params = dict(params or {})
        self.params: dict[str, int] = {}
        self.state = InvocationState.UNINITIALIZED
        self.batch: Optional[Batch] = None
        self.computed: dict[str, int] = {}
        self.output: Optional[CircuitOutput] = None

    def _advance(
        self,
        expected: InvocationState,
        target: InvocationState,
        step: Callable[[], None],
    ) -> None:
        if self.state is not expected:
            raise InvocationStateError(
                f"{self.circuit.name}: cannot move to {target.value} from {self.state.value}"
            )
        try:
            step()
        except Exception as e:
            self.state = InvocationState.FAILED
            logger.warning(f"{self.circuit.name} failed during {target.value}: {e}")
            raise
        logger.debug(f"{self.circuit.name}: {self.state.value} -> {target.value}")
        self.state = target

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def load(self, batch: Batch) -> None:
        """
        Attach the batch and check invocation parameters.

        Raises:
            TypeError: If batch is not a Batch
            ParameterError: If parameters are missing, unknown or out of range
        """
        def step():
            if not isinstance(batch, Batch):
                raise TypeError(f"Expected a Batch, got {type(batch).__name__}")
            self.params = self.circuit.check_params(self.raw_params)
            self.batch = batch
        self._advance(InvocationState.UNINITIALIZED, InvocationState.BATCH_LOADED, step)

    def validate(self) -> None:
        def step():
            validate_batch(
                self.batch,
                self.circuit.allocation,
                self.circuit.receipt_patterns,
                self.circuit.slot_patterns,
                self.params,
            )
        self._advance(InvocationState.BATCH_LOADED, InvocationState.VALIDATED, step)

    def aggregate(self) -> None:
        def step():
            self.computed = compute(self.circuit.computations, self.batch, self.params)
        self._advance(InvocationState.VALIDATED, InvocationState.AGGREGATED, step)

    def assert_thresholds(self) -> None:
        def step():
            check_assertions(self.circuit.assertions, self.params, self.computed)
        self._advance(InvocationState.AGGREGATED, InvocationState.ASSERTED, step)

    def encode(self) -> None:
        def step():
            values = tuple(
                resolve(output.value, self.params, self.computed)
                for output in self.circuit.outputs
            )
            buffer = encode_output(
                list(zip(values, self.circuit.output_widths)),
                self.circuit.output_signed,
            )
            self.output = CircuitOutput(
                circuit_name=self.circuit.name,
                buffer=buffer,
                values=values,
                computed=dict(self.computed),
            )
        self._advance(InvocationState.ASSERTED, InvocationState.OUTPUT_ENCODED, step)

    def finish(self) -> CircuitOutput:
        self._advance(InvocationState.OUTPUT_ENCODED, InvocationState.DONE, lambda: None)
        return self.output

    def run(self, batch: Batch) -> CircuitOutput:
        """Execute every step in order."""
        self.load(batch)
        self.validate()
        self.aggregate()
        self.assert_thresholds()
        self.encode()
        return self.finish()


# =============================================================================
# ENTRY POINTS
# =============================================================================

def run_circuit(
    circuit: Circuit,
    batch: Batch,
    params: Optional[Mapping[str, int]] = None,
) -> CircuitOutput:
    """
    Run a circuit over a batch.

    Raises:
        ParameterError: If parameters are missing, unknown or too wide
        CapacityMismatch: If the batch size differs from the allocation
        PatternMismatch: If any record fails its slot's pattern
        Overflow: If any value exceeds its declared width
        ThresholdUnmet: If an aggregate fails its asserted bound
    """
    return Invocation(circuit, params).run(batch)


def evaluate_circuit(
    circuit: Circuit,
    batch: Batch,
    params: Optional[Mapping[str, int]] = None,
) -> VerificationResult:
    """
    Apply the circuit as a binary accept/reject gate.

    Returns:
        VerificationResult with either accepted=True and an output, or
        accepted=False and a Failure
    """
    try:
        output = run_circuit(circuit, batch, params)
        return VerificationResult(accepted=True, output=output)
    except VerificationError as e:
        return VerificationResult(
            accepted=False,
            failure=Failure.from_error(circuit.name, e),
        )
