"""
Core Domain Objects for chainproof.

Domain Objects:
    FailureRule  - The distinguishable ways an invocation can fail
    Failure      - An explicit, auditable record of a failed invocation
    Allocation   - The fixed evidence capacity of a circuit
    Batch        - The evidence supplied to one invocation
    Param / Var  - References to circuit parameters and computed values
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Union

from .evidence import EvidenceValidationError, Receipt, StorageSlot


# =============================================================================
# FAILURE SYSTEM
# =============================================================================

class FailureRule(Enum):
    """
    Hard failure rules.

    Any of these aborts the invocation with no output:
    pattern_mismatch:   a record does not match its slot's pattern
    capacity_mismatch:  supplied evidence differs from the declared capacity
    overflow:           a value exceeds its declared numeric width
    threshold_unmet:    an aggregate fails its asserted bound
    invalid_parameter:  a circuit parameter is missing, unknown or too wide
    """
    PATTERN_MISMATCH = "pattern_mismatch"
    CAPACITY_MISMATCH = "capacity_mismatch"
    OVERFLOW = "overflow"
    THRESHOLD_UNMET = "threshold_unmet"
    INVALID_PARAMETER = "invalid_parameter"


class VerificationError(Exception):
    """Raised when an invocation fails. Never recovered within the invocation."""

    rule: FailureRule

    def __init__(self, rule: FailureRule, reason: str):
        self.rule = rule
        self.reason = reason
        super().__init__(f"[{rule.value}] {reason}")


class PatternMismatch(VerificationError):
    """One or more batch slots failed their pattern."""

    def __init__(self, reason: str, failures: Optional[list[tuple[str, int, list[str]]]] = None):
        # failures: (stream, slot index, mismatch reasons)
        self.failures = failures or []
        super().__init__(FailureRule.PATTERN_MISMATCH, reason)


class CapacityMismatch(VerificationError):
    def __init__(self, reason: str):
        super().__init__(FailureRule.CAPACITY_MISMATCH, reason)


class Overflow(VerificationError):
    def __init__(self, reason: str):
        super().__init__(FailureRule.OVERFLOW, reason)


class ThresholdUnmet(VerificationError):
    def __init__(self, reason: str):
        super().__init__(FailureRule.THRESHOLD_UNMET, reason)


class ParameterError(VerificationError):
    def __init__(self, reason: str):
        super().__init__(FailureRule.INVALID_PARAMETER, reason)


@dataclass(frozen=True)
class Failure:
    """
    An explicit failure with auditable reason.

    A failed invocation produces this record and nothing else. It is
    never retried and carries no partial output.
    """
    circuit_name: str
    rule: FailureRule
    reason: str
    timestamp: datetime

    @classmethod
    def from_error(
        cls,
        circuit_name: str,
        error: VerificationError,
        timestamp: Optional[datetime] = None,
    ) -> Failure:
        """Create a Failure from a VerificationError."""
        if timestamp is None:
            timestamp = datetime.utcnow()

        return cls(
            circuit_name=circuit_name,
            rule=error.rule,
            reason=error.reason,
            timestamp=timestamp,
        )


# =============================================================================
# REFERENCES
# =============================================================================

@dataclass(frozen=True)
class Param:
    """A reference to a circuit parameter supplied at invocation time."""
    name: str


@dataclass(frozen=True)
class Var:
    """A reference to a value computed earlier in the same invocation."""
    name: str


Operand = Union[int, Param, Var]


def resolve(
    operand: Operand,
    params: Mapping[str, int],
    values: Optional[Mapping[str, int]] = None,
) -> int:
    """
    Resolve an operand to an integer.

    Raises:
        ParameterError: If a referenced parameter was not supplied
        KeyError: If a referenced computed value does not exist
    """
    if isinstance(operand, Param):
        if operand.name not in params:
            raise ParameterError(f"Missing circuit parameter: {operand.name}")
        return params[operand.name]
    if isinstance(operand, Var):
        if values is None or operand.name not in values:
            raise KeyError(f"No computed value named '{operand.name}'")
        return values[operand.name]
    if isinstance(operand, int) and not isinstance(operand, bool):
        return operand
    raise TypeError(f"Unsupported operand: {operand!r}")


# =============================================================================
# ALLOCATION & BATCH
# =============================================================================

@dataclass(frozen=True)
class Allocation:
    """
    Fixed evidence capacity of a circuit.

    Capacity is exact: every declared slot must carry a record. There is
    no optional or partial matching.
    """
    receipts: int = 0
    storage_slots: int = 0
    transactions: int = 0

    def __post_init__(self):
        for name in ("receipts", "storage_slots", "transactions"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"Allocation.{name} must be a non-negative int, got {value!r}")


@dataclass(frozen=True)
class Batch:
    """
    The evidence supplied to one invocation.

    Immutable once constructed. Slot order is significant: slot i is
    checked against pattern i.
    """
    receipts: tuple[Receipt, ...] = ()
    storage_slots: tuple[StorageSlot, ...] = ()

    def __post_init__(self):
        """Validate batch contents."""
        if not isinstance(self.receipts, tuple) or not isinstance(self.storage_slots, tuple):
            raise EvidenceValidationError("Batch streams must be tuples")
        for receipt in self.receipts:
            if not isinstance(receipt, Receipt):
                raise EvidenceValidationError(
                    f"Batch.receipts must hold Receipt, got {type(receipt).__name__}"
                )
        for slot in self.storage_slots:
            if not isinstance(slot, StorageSlot):
                raise EvidenceValidationError(
                    f"Batch.storage_slots must hold StorageSlot, got {type(slot).__name__}"
                )

    @classmethod
    def of(cls, receipts=(), storage_slots=()) -> Batch:
        """Build a batch from any iterables."""
        return cls(receipts=tuple(receipts), storage_slots=tuple(storage_slots))
