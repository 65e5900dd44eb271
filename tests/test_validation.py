"""
Tests for the Batch Validator.

These tests verify the all-or-fail gate:
1. Capacity is exact, never "up to"
2. One non-matching record fails the whole batch
3. The failure names every offending slot
"""

import pytest

from chainproof.domain import (
    Allocation,
    Batch,
    CapacityMismatch,
    FailureRule,
    PatternMismatch,
)
from chainproof.evidence import create_log_field, create_receipt, create_storage_slot
from chainproof.keys import to_address
from chainproof.matching import FieldPattern, ReceiptPattern, SlotPattern
from chainproof.validation import assign_patterns, validate_batch, validate_capacity


PAIR = to_address("0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc")
SWAP = int("d78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822", 16)
MINT = int("4c209b5fc8ad50758f13e2e1088ba56a560dff690a1c6fef26394f4c03821c4f", 16)

MINT_PATTERN = ReceiptPattern((FieldPattern(PAIR, MINT, 0, False),))


def mint_receipt(amount: int = 10, event: int = MINT):
    """Helper: a receipt tracking a Mint amount0 field."""
    return create_receipt(create_log_field(PAIR, event, 0, False, amount, 100))


# =============================================================================
# CAPACITY TESTS
# =============================================================================

class TestCapacity:
    """Test exact capacity enforcement."""

    def test_exact_capacity_passes(self):
        validate_capacity(Batch.of([mint_receipt()] * 3), Allocation(receipts=3))

    def test_short_batch_rejected(self):
        with pytest.raises(CapacityMismatch, match="2 receipts"):
            validate_capacity(Batch.of([mint_receipt()] * 2), Allocation(receipts=3))

    def test_over_capacity_rejected(self):
        with pytest.raises(CapacityMismatch):
            validate_capacity(Batch.of([mint_receipt()] * 4), Allocation(receipts=3))

    def test_storage_capacity(self):
        batch = Batch.of(storage_slots=[create_storage_slot(PAIR, 9, 1, 1)])
        with pytest.raises(CapacityMismatch, match="storage slots"):
            validate_capacity(batch, Allocation(storage_slots=2))

    def test_capacity_error_rule(self):
        with pytest.raises(CapacityMismatch) as excinfo:
            validate_capacity(Batch(), Allocation(receipts=1))
        assert excinfo.value.rule == FailureRule.CAPACITY_MISMATCH


# =============================================================================
# PATTERN ASSIGNMENT TESTS
# =============================================================================

class TestAssignPatterns:

    def test_single_pattern_repeats(self):
        assert assign_patterns([MINT_PATTERN], 3) == (MINT_PATTERN,) * 3

    def test_one_per_slot(self):
        other = ReceiptPattern((FieldPattern(PAIR, SWAP, 0, False),))
        assert assign_patterns([MINT_PATTERN, other], 2) == (MINT_PATTERN, other)

    def test_wrong_count(self):
        with pytest.raises(ValueError):
            assign_patterns([MINT_PATTERN, MINT_PATTERN], 3)

    def test_empty_stream(self):
        assert assign_patterns([], 0) == ()


# =============================================================================
# BATCH VALIDATION TESTS
# =============================================================================

class TestValidateBatch:
    """Test the conjunctive fold over all slots."""

    def test_all_match(self):
        batch = Batch.of([mint_receipt()] * 20)
        validate_batch(batch, Allocation(receipts=20), [MINT_PATTERN])

    def test_one_bad_selector_fails_batch(self):
        """19 valid Mint receipts and one Swap: the whole batch fails."""
        receipts = [mint_receipt()] * 20
        receipts[7] = mint_receipt(event=SWAP)
        with pytest.raises(PatternMismatch) as excinfo:
            validate_batch(Batch.of(receipts), Allocation(receipts=20), [MINT_PATTERN])

        error = excinfo.value
        assert error.rule == FailureRule.PATTERN_MISMATCH
        assert len(error.failures) == 1
        stream, index, reasons = error.failures[0]
        assert (stream, index) == ("receipts", 7)
        assert "event_id" in reasons[0]

    def test_two_good_one_bad(self):
        """The good records' sum is irrelevant once one record mismatches."""
        receipts = [mint_receipt(1000), mint_receipt(2000), mint_receipt(5, event=SWAP)]
        with pytest.raises(PatternMismatch, match="receipts\\[2\\]"):
            validate_batch(Batch.of(receipts), Allocation(receipts=3), [MINT_PATTERN])

    def test_every_offender_reported(self):
        receipts = [mint_receipt(event=SWAP), mint_receipt(), mint_receipt(event=SWAP)]
        with pytest.raises(PatternMismatch, match="2 slot"):
            validate_batch(Batch.of(receipts), Allocation(receipts=3), [MINT_PATTERN])

    def test_capacity_checked_first(self):
        with pytest.raises(CapacityMismatch):
            validate_batch(Batch.of([mint_receipt(event=SWAP)]), Allocation(receipts=2), [MINT_PATTERN])

    def test_per_slot_storage_patterns(self):
        batch = Batch.of(storage_slots=[
            create_storage_slot(PAIR, 8, 1, 1),
            create_storage_slot(PAIR, 9, 1, 1),
        ])
        allocation = Allocation(storage_slots=2)
        validate_batch(batch, allocation, slot_patterns=[SlotPattern(PAIR, 8), SlotPattern(PAIR, 9)])

        with pytest.raises(PatternMismatch) as excinfo:
            validate_batch(batch, allocation, slot_patterns=[SlotPattern(PAIR, 9), SlotPattern(PAIR, 8)])
        assert [f[1] for f in excinfo.value.failures] == [0, 1]

    def test_both_streams_validated(self):
        batch = Batch.of([mint_receipt()], [create_storage_slot(PAIR, 8, 1, 1)])
        with pytest.raises(PatternMismatch) as excinfo:
            validate_batch(
                batch,
                Allocation(receipts=1, storage_slots=1),
                [MINT_PATTERN],
                [SlotPattern(PAIR, 9)],
            )
        assert excinfo.value.failures[0][0] == "storage_slots"
