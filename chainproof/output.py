"""
Output Encoder for chainproof.

The public output is a fixed-layout buffer: each value occupies a
big-endian slot of `width // 8` bytes, concatenated in declaration order.

    [address: 20 bytes][uint248: 31 bytes][uint64: 8 bytes] ...

Signed slots hold the two's complement of the value at the slot width,
the layout Solidity uses for intN.

Consumers (typically an on-chain verifier) decode by fixed byte offsets.
Changing the order or widths of a circuit's outputs is a breaking change
for every decoder of that circuit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .domain import Operand, Overflow
from .keys import ADDRESS_BITS, WORD_BITS


# =============================================================================
# LAYOUT
# =============================================================================

def check_output_width(width: int) -> int:
    """Widths are whole bytes between 8 and 256 bits."""
    if isinstance(width, bool) or not isinstance(width, int):
        raise ValueError(f"Output width must be an int, got {width!r}")
    if width % 8 or not 8 <= width <= WORD_BITS:
        raise ValueError(f"Output width must be a multiple of 8 in [8, 256], got {width}")
    return width


def slot_size(width: int) -> int:
    return check_output_width(width) // 8


def output_layout(widths: Sequence[int]) -> list[tuple[int, int]]:
    """(offset, size) in bytes of each output slot."""
    layout = []
    offset = 0
    for width in widths:
        size = slot_size(width)
        layout.append((offset, size))
        offset += size
    return layout


# =============================================================================
# DECLARATIONS
# =============================================================================

@dataclass(frozen=True)
class OutputField:
    """One typed value of the public output."""
    value: Operand
    width: int
    label: str = ""
    signed: bool = False

    def __post_init__(self):
        check_output_width(self.width)


def output_address(value: Operand, label: str = "") -> OutputField:
    return OutputField(value=value, width=ADDRESS_BITS, label=label)


def output_uint(width: int, value: Operand, label: str = "") -> OutputField:
    return OutputField(value=value, width=width, label=label)


def output_int(width: int, value: Operand, label: str = "") -> OutputField:
    return OutputField(value=value, width=width, label=label, signed=True)


# =============================================================================
# ENCODING
# =============================================================================

def encode_output(
    values: Sequence[tuple[int, int]],
    signed: Sequence[bool] = (),
) -> bytes:
    """
    Serialize (value, width) pairs into the fixed-layout buffer.

    `signed[i]`, when true, encodes value i as two's complement; positions
    beyond `signed` are unsigned.

    Raises:
        Overflow: If a value does not fit its declared width
    """
    buffer = bytearray()
    for position, (value, width) in enumerate(values):
        size = slot_size(width)
        if position < len(signed) and signed[position]:
            low, high = -(1 << (width - 1)), (1 << (width - 1)) - 1
            if not low <= value <= high:
                raise Overflow(f"Output {position} value {value} does not fit in int{width}")
            value &= (1 << width) - 1
        elif value < 0 or value >> width:
            raise Overflow(f"Output {position} value {value} does not fit in uint{width}")
        buffer += value.to_bytes(size, "big")
    return bytes(buffer)


def decode_output(
    buffer: bytes,
    widths: Sequence[int],
    signed: Sequence[bool] = (),
) -> list[int]:
    """
    Decode a buffer at the fixed offsets implied by `widths`.

    Raises:
        ValueError: If the buffer length does not match the layout
    """
    layout = output_layout(widths)
    expected = sum(size for _, size in layout)
    if len(buffer) != expected:
        raise ValueError(f"Output buffer is {len(buffer)} bytes, layout needs {expected}")

    values = []
    for position, (offset, size) in enumerate(layout):
        is_signed = position < len(signed) and bool(signed[position])
        values.append(int.from_bytes(buffer[offset:offset + size], "big", signed=is_signed))
    return values
