"""
Batch Validation for chainproof.

This module implements the all-or-fail batch gate. There is no "skip"
state: a record that fails its pattern fails the whole batch.

Acceptance requirements (ALL must be true):
1. Each evidence stream holds exactly its declared capacity
2. Every receipt matches the pattern assigned to its slot
3. Every storage slot matches the pattern assigned to its slot

Silent exclusion of non-matching records would let a prover drop
unfavorable evidence and still pass the aggregate thresholds.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from .domain import Allocation, Batch, CapacityMismatch, PatternMismatch
from .matching import Pattern, Record, explain_mismatch

logger = logging.getLogger(__name__)


# =============================================================================
# CAPACITY
# =============================================================================

def validate_capacity(batch: Batch, allocation: Allocation) -> None:
    """
    Validate that every stream holds exactly its declared capacity.

    Raises:
        CapacityMismatch: If any stream is short or over capacity
    """
    if len(batch.receipts) != allocation.receipts:
        raise CapacityMismatch(
            f"Batch has {len(batch.receipts)} receipts, circuit allocates exactly "
            f"{allocation.receipts}"
        )
    if len(batch.storage_slots) != allocation.storage_slots:
        raise CapacityMismatch(
            f"Batch has {len(batch.storage_slots)} storage slots, circuit allocates "
            f"exactly {allocation.storage_slots}"
        )


# =============================================================================
# PATTERN ASSIGNMENT
# =============================================================================

def assign_patterns(patterns: Sequence[Pattern], capacity: int) -> tuple[Pattern, ...]:
    """
    Expand a pattern declaration to one pattern per slot.

    A single pattern applies to every slot; otherwise there must be
    exactly one pattern per slot.
    """
    if capacity == 0:
        return ()
    if len(patterns) == 1:
        return tuple(patterns) * capacity
    if len(patterns) != capacity:
        raise ValueError(
            f"Expected 1 or {capacity} patterns for {capacity} slots, got {len(patterns)}"
        )
    return tuple(patterns)


def _fold(
    stream: str,
    records: Sequence[Record],
    patterns: Sequence[Pattern],
    params: Mapping[str, int],
) -> list[tuple[str, int, list[str]]]:
    # Every slot is evaluated so the failure names all offenders
    failures = []
    for index, (record, pattern) in enumerate(zip(records, patterns)):
        reasons = explain_mismatch(record, pattern, params)
        if reasons:
            failures.append((stream, index, reasons))
    return failures


# =============================================================================
# FULL BATCH VALIDATION
# =============================================================================

def validate_batch(
    batch: Batch,
    allocation: Allocation,
    receipt_patterns: Sequence[Pattern] = (),
    slot_patterns: Sequence[Pattern] = (),
    params: Optional[Mapping[str, int]] = None,
) -> None:
    """
    Apply the full batch gate.

    The result is the conjunction of every per-slot predicate. Any
    failing slot fails the batch.

    Raises:
        CapacityMismatch: If a stream length differs from its allocation
        PatternMismatch: If any slot fails its pattern
    """
    if params is None:
        params = {}

    validate_capacity(batch, allocation)

    failures = _fold(
        "receipts",
        batch.receipts,
        assign_patterns(receipt_patterns, allocation.receipts),
        params,
    )
    failures += _fold(
        "storage_slots",
        batch.storage_slots,
        assign_patterns(slot_patterns, allocation.storage_slots),
        params,
    )

    if failures:
        stream, index, reasons = failures[0]
        summary = f"{len(failures)} slot(s) failed; first is {stream}[{index}]: {'; '.join(reasons)}"
        logger.debug(f"Batch rejected: {summary}")
        raise PatternMismatch(summary, failures)

    logger.debug(
        f"Batch accepted: {len(batch.receipts)} receipts, "
        f"{len(batch.storage_slots)} storage slots"
    )
