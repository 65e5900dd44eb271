"""
Value Extraction for chainproof.

Extraction is a pure projection from a validated record to one scalar.
It never re-checks pattern membership; that is the batch validator's job.

Encodings:
    UINT    - the word as an unsigned integer of the declared width
    ADDRESS - the low 160 bits of the word
    INT     - two's complement, sign bit at the top of the extracted bits
    ABS_INT - the magnitude of the INT interpretation

Reading a signed field as UINT turns small negative numbers into huge
positive ones. Circuits must declare signed fields and use INT or ABS_INT
for them; the circuit definition refuses anything else.

Storage words often pack several values. `bit_offset` and `bit_width`
select one of them before decoding, e.g. a Uniswap V3 observation keeps
an int56 tickCumulative at bits 32..87.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Union

from ..domain import Batch, Overflow
from ..evidence import Receipt, StorageSlot
from ..keys import ADDRESS_MASK, WORD_BITS


DEFAULT_VALUE_WIDTH = 248
BLOCK_NUMBER_WIDTH = 64


class Encoding(Enum):
    UINT = "uint"
    ADDRESS = "address"
    INT = "int"
    ABS_INT = "abs_int"


class Stream(Enum):
    """The evidence streams of a batch."""
    RECEIPTS = "receipts"
    STORAGE_SLOTS = "storage_slots"


def check_bit_range(bit_offset: int, bit_width: int) -> None:
    """
    Raises:
        ValueError: If the bits do not lie inside one 256-bit word
    """
    if bit_offset < 0 or bit_width < 1 or bit_offset + bit_width > WORD_BITS:
        raise ValueError(
            f"Bit field [{bit_offset}, {bit_offset + bit_width}) is outside the {WORD_BITS}-bit word"
        )


# =============================================================================
# VALUE SOURCES
# =============================================================================

@dataclass(frozen=True)
class FieldValue:
    """The value of the receipt field at `position`."""
    position: int
    encoding: Encoding = Encoding.UINT
    width: int = DEFAULT_VALUE_WIDTH
    bit_offset: int = 0
    bit_width: int = WORD_BITS

    def __post_init__(self):
        check_bit_range(self.bit_offset, self.bit_width)

    @property
    def stream(self) -> Stream:
        return Stream.RECEIPTS

    @property
    def signed(self) -> bool:
        return self.encoding is Encoding.INT


@dataclass(frozen=True)
class SlotValue:
    """The value of a storage slot, or of a bit field packed inside it."""
    encoding: Encoding = Encoding.UINT
    width: int = DEFAULT_VALUE_WIDTH
    bit_offset: int = 0
    bit_width: int = WORD_BITS

    def __post_init__(self):
        check_bit_range(self.bit_offset, self.bit_width)

    @property
    def stream(self) -> Stream:
        return Stream.STORAGE_SLOTS

    @property
    def signed(self) -> bool:
        return self.encoding is Encoding.INT


@dataclass(frozen=True)
class BlockNumber:
    """The block at which a record was observed."""
    stream: Stream
    width: int = BLOCK_NUMBER_WIDTH

    @property
    def encoding(self) -> Encoding:
        return Encoding.UINT

    @property
    def signed(self) -> bool:
        return False


ValueSource = Union[FieldValue, SlotValue, BlockNumber]


# =============================================================================
# DECODING
# =============================================================================

def bit_field(word: int, bit_offset: int = 0, bit_width: int = WORD_BITS) -> int:
    """The `bit_width` bits of `word` starting at `bit_offset` (bit 0 is the least significant)."""
    check_bit_range(bit_offset, bit_width)
    return (word >> bit_offset) & ((1 << bit_width) - 1)


def to_signed(word: int, bits: int = WORD_BITS) -> int:
    """Interpret the low `bits` bits of a word as two's complement."""
    if word >> (bits - 1):
        return word - (1 << bits)
    return word


def decode_word(
    word: int,
    encoding: Encoding,
    width: int = DEFAULT_VALUE_WIDTH,
    bit_offset: int = 0,
    bit_width: int = WORD_BITS,
) -> int:
    """
    Decode a 256-bit word, or the bit field of it selected by
    `bit_offset` and `bit_width`.

    Raises:
        Overflow: If the decoded value does not fit the declared width
    """
    raw = bit_field(word, bit_offset, bit_width)

    if encoding is Encoding.ADDRESS:
        return raw & ADDRESS_MASK

    if encoding is Encoding.UINT:
        if raw >> width:
            raise Overflow(f"Value {raw} does not fit in uint{width}")
        return raw

    signed = to_signed(raw, bit_width)
    low, high = -(1 << (width - 1)), (1 << (width - 1)) - 1
    if not low <= signed <= high:
        raise Overflow(f"Value {signed} does not fit in int{width}")
    if encoding is Encoding.ABS_INT:
        return abs(signed)
    return signed


# =============================================================================
# EXTRACTION
# =============================================================================

def extract(record: Union[Receipt, StorageSlot], source: ValueSource) -> int:
    """Project one record to a scalar."""
    if isinstance(source, BlockNumber):
        if record.block_number >> source.width:
            raise Overflow(f"Block number {record.block_number} does not fit in uint{source.width}")
        return record.block_number

    if isinstance(source, FieldValue):
        if not isinstance(record, Receipt):
            raise TypeError(f"FieldValue reads receipts, got {type(record).__name__}")
        word = record[source.position].value
    else:
        if not isinstance(record, StorageSlot):
            raise TypeError(f"SlotValue reads storage slots, got {type(record).__name__}")
        word = record.value
    return decode_word(word, source.encoding, source.width, source.bit_offset, source.bit_width)


def stream_records(batch: Batch, stream: Stream) -> Sequence[Union[Receipt, StorageSlot]]:
    if stream is Stream.RECEIPTS:
        return batch.receipts
    return batch.storage_slots


def extract_all(batch: Batch, source: ValueSource) -> list[int]:
    """Project every record of the source's stream, in slot order."""
    return [extract(record, source) for record in stream_records(batch, source.stream)]


def select(values: Sequence[int], index: int) -> int:
    """
    Indexed access to one extracted value.

    Negative indices count from the end, so -1 is the last slot.
    """
    return values[index]
