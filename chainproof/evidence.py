"""
Evidence Records - The canonical input contract for chainproof.

SYSTEM INVARIANT:
    Every value the engine aggregates comes from an Evidence Record whose
    provenance (contract, selector, position) is carried alongside it.
    Malformed records are rejected at construction time.

Evidence kinds:
    LOG_FIELD    - One field of an emitted event (topic or data word)
    STORAGE_SLOT - One storage word of a contract

Records arrive already authenticated by the evidence-supply layer. The
engine never fetches or proves them; it only checks them against patterns.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .keys import (
    ADDRESS_MASK,
    WORD_MASK,
    HexLike,
    to_address,
    to_word,
)


class EvidenceKind(Enum):
    """The two evidence record kinds."""
    LOG_FIELD = "log_field"
    STORAGE_SLOT = "storage_slot"


# Upper bound on fields tracked per receipt
MAX_FIELDS_PER_RECEIPT = 4


class EvidenceValidationError(Exception):
    """Raised when an evidence record fails validation checks."""
    pass


def _check_address(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EvidenceValidationError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= ADDRESS_MASK:
        raise EvidenceValidationError(f"{name} must fit in 160 bits, got {value}")


def _check_word(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EvidenceValidationError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value <= WORD_MASK:
        raise EvidenceValidationError(f"{name} must fit in 256 bits, got {value}")


def _check_non_negative(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise EvidenceValidationError(f"{name} must be a non-negative int, got {value!r}")


# =============================================================================
# LOG FIELD
# =============================================================================

@dataclass(frozen=True)
class LogField:
    """
    One field of an event log.

    Invariants enforced:
    1. contract fits in 160 bits
    2. event_id and value fit in 256 bits
    3. index, block_number and log_pos are non-negative

    The engine does not check that (index, is_topic) is consistent with the
    event layout behind event_id. Circuits declare the expected layout and
    the matcher compares against that declaration.
    """
    contract: int
    event_id: int
    index: int
    is_topic: bool
    value: int
    block_number: int
    log_pos: int = 0

    def __post_init__(self):
        """Enforce invariants at construction time."""
        _check_address("contract", self.contract)
        _check_word("event_id", self.event_id)
        _check_word("value", self.value)
        _check_non_negative("index", self.index)
        _check_non_negative("block_number", self.block_number)
        _check_non_negative("log_pos", self.log_pos)
        if not isinstance(self.is_topic, bool):
            raise EvidenceValidationError(
                f"is_topic must be a bool, got {type(self.is_topic).__name__}"
            )

    @property
    def kind(self) -> EvidenceKind:
        return EvidenceKind.LOG_FIELD

    @property
    def selector(self) -> int:
        """The event identifier this field claims to belong to."""
        return self.event_id

    @property
    def position(self) -> tuple[int, bool]:
        return (self.index, self.is_topic)


# =============================================================================
# STORAGE SLOT
# =============================================================================

@dataclass(frozen=True)
class StorageSlot:
    """
    One storage word of a contract.

    `slot` is the full slot key. For mapping entries it must equal a key
    recomputed from the mapping layout (see keys.struct_field_in_mapping).
    """
    contract: int
    slot: int
    value: int
    block_number: int

    def __post_init__(self):
        """Enforce invariants at construction time."""
        _check_address("contract", self.contract)
        _check_word("slot", self.slot)
        _check_word("value", self.value)
        _check_non_negative("block_number", self.block_number)

    @property
    def kind(self) -> EvidenceKind:
        return EvidenceKind.STORAGE_SLOT

    @property
    def selector(self) -> int:
        """The storage slot key."""
        return self.slot


# =============================================================================
# RECEIPT
# =============================================================================

@dataclass(frozen=True)
class Receipt:
    """
    The log fields read from one transaction receipt.

    A receipt is one slot of the log-field stream. It tracks between one
    and MAX_FIELDS_PER_RECEIPT fields, all observed at the same block.
    """
    fields: tuple[LogField, ...]
    tx_hash: Optional[str] = None

    def __post_init__(self):
        """Enforce invariants at construction time."""
        if not isinstance(self.fields, tuple):
            raise EvidenceValidationError("fields must be a tuple of LogField")
        if not 1 <= len(self.fields) <= MAX_FIELDS_PER_RECEIPT:
            raise EvidenceValidationError(
                f"A receipt tracks 1 to {MAX_FIELDS_PER_RECEIPT} fields, "
                f"got {len(self.fields)}"
            )
        for field in self.fields:
            if not isinstance(field, LogField):
                raise EvidenceValidationError(
                    f"Receipt fields must be LogField, got {type(field).__name__}"
                )

        blocks = {field.block_number for field in self.fields}
        if len(blocks) != 1:
            raise EvidenceValidationError(
                f"Receipt fields disagree on block number: {sorted(blocks)}"
            )

    @property
    def block_number(self) -> int:
        return self.fields[0].block_number

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, position: int) -> LogField:
        return self.fields[position]


# =============================================================================
# FACTORIES
# =============================================================================

def create_log_field(
    contract: HexLike,
    event_id: HexLike,
    index: int,
    is_topic: bool,
    value: HexLike,
    block_number: int,
    log_pos: int = 0,
) -> LogField:
    """
    Factory function to create a LogField from ints, hex strings or bytes.

    Address-valued topics may be passed as addresses; they are stored as
    the left-padded 256-bit word the log carries.
    """
    return LogField(
        contract=to_address(contract),
        event_id=to_word(event_id),
        index=index,
        is_topic=is_topic,
        value=to_word(value),
        block_number=block_number,
        log_pos=log_pos,
    )


def create_storage_slot(
    contract: HexLike,
    slot: HexLike,
    value: HexLike,
    block_number: int,
) -> StorageSlot:
    """Factory function to create a StorageSlot from ints, hex strings or bytes."""
    return StorageSlot(
        contract=to_address(contract),
        slot=to_word(slot),
        value=to_word(value),
        block_number=block_number,
    )


def create_receipt(*fields: LogField, tx_hash: Optional[str] = None) -> Receipt:
    """Group log fields read from one transaction receipt."""
    return Receipt(fields=tuple(fields), tx_hash=tx_hash)
