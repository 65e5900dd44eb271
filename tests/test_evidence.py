"""
Tests for Evidence Records.

These tests verify that malformed records cannot enter the system:
1. Addresses fit in 160 bits, words in 256 bits
2. Receipts group 1 to 4 fields from a single block
3. Records are immutable once constructed
"""

import dataclasses

import pytest

from chainproof.evidence import (
    MAX_FIELDS_PER_RECEIPT,
    EvidenceKind,
    EvidenceValidationError,
    LogField,
    Receipt,
    StorageSlot,
    create_log_field,
    create_receipt,
    create_storage_slot,
)
from chainproof.keys import ADDRESS_MASK, WORD_MASK, to_address


PAIR = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"
SWAP = "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"


def make_field(index: int = 3, is_topic: bool = False, value: int = 1, block_number: int = 100, log_pos: int = 0):
    """Helper to create a LogField for testing."""
    return create_log_field(PAIR, SWAP, index, is_topic, value, block_number, log_pos)


# =============================================================================
# LOG FIELD TESTS
# =============================================================================

class TestLogField:
    """Test LogField invariants."""

    def test_valid_field(self):
        field = make_field(value=42)
        assert field.contract == to_address(PAIR)
        assert field.value == 42
        assert field.kind == EvidenceKind.LOG_FIELD
        assert field.selector == int(SWAP, 16)
        assert field.position == (3, False)

    def test_contract_must_fit_address(self):
        with pytest.raises(EvidenceValidationError, match="160 bits"):
            LogField(
                contract=ADDRESS_MASK + 1,
                event_id=1,
                index=0,
                is_topic=False,
                value=0,
                block_number=1,
            )

    def test_value_must_fit_word(self):
        with pytest.raises(EvidenceValidationError, match="256 bits"):
            LogField(
                contract=1,
                event_id=1,
                index=0,
                is_topic=False,
                value=WORD_MASK + 1,
                block_number=1,
            )

    def test_negative_index_rejected(self):
        with pytest.raises(EvidenceValidationError, match="index"):
            LogField(contract=1, event_id=1, index=-1, is_topic=False, value=0, block_number=1)

    def test_is_topic_must_be_bool(self):
        with pytest.raises(EvidenceValidationError, match="is_topic"):
            LogField(contract=1, event_id=1, index=0, is_topic=1, value=0, block_number=1)

    def test_immutable(self):
        field = make_field()
        with pytest.raises(dataclasses.FrozenInstanceError):
            field.value = 7


# =============================================================================
# STORAGE SLOT TESTS
# =============================================================================

class TestStorageSlot:
    """Test StorageSlot invariants."""

    def test_factory_parses_hex(self):
        record = create_storage_slot(PAIR, "0x09", "0x0100", 5)
        assert record.slot == 9
        assert record.value == 256
        assert record.kind == EvidenceKind.STORAGE_SLOT
        assert record.selector == 9

    def test_negative_block_rejected(self):
        with pytest.raises(EvidenceValidationError, match="block_number"):
            StorageSlot(contract=1, slot=0, value=0, block_number=-1)


# =============================================================================
# RECEIPT TESTS
# =============================================================================

class TestReceipt:
    """Test receipt grouping."""

    def test_groups_fields(self):
        receipt = create_receipt(make_field(index=1), make_field(index=3), tx_hash="0xabc")
        assert len(receipt) == 2
        assert receipt[1].index == 3
        assert receipt.block_number == 100
        assert receipt.tx_hash == "0xabc"

    def test_requires_a_field(self):
        with pytest.raises(EvidenceValidationError, match="1 to 4"):
            create_receipt()

    def test_field_limit(self):
        fields = [make_field(index=i) for i in range(MAX_FIELDS_PER_RECEIPT + 1)]
        with pytest.raises(EvidenceValidationError, match="1 to 4"):
            create_receipt(*fields)

    def test_fields_share_block(self):
        with pytest.raises(EvidenceValidationError, match="block number"):
            create_receipt(make_field(block_number=1), make_field(block_number=2))

    def test_rejects_non_field(self):
        with pytest.raises(EvidenceValidationError, match="LogField"):
            Receipt(fields=(create_storage_slot(PAIR, 0, 0, 1),))
