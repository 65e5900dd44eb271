"""
Event identifiers, storage slot keys and address handling.

The engine compares provenance as plain integers. This module turns the
human-facing forms (event signatures, hex addresses, mapping keys) into
those integers, using web3's keccak and EIP-55 helpers.

Storage layout follows Solidity:
    value slot      - the declared slot index itself
    mapping entry   - keccak256(pad32(key) ++ pad32(base_slot))
    struct field    - mapping entry + field offset
"""

from __future__ import annotations

from typing import Union

from web3 import Web3


# =============================================================================
# CONSTANTS
# =============================================================================

WORD_BITS = 256
WORD_BYTES = 32
ADDRESS_BITS = 160
ADDRESS_BYTES = 20

WORD_MASK = (1 << WORD_BITS) - 1
ADDRESS_MASK = (1 << ADDRESS_BITS) - 1

HexLike = Union[int, str, bytes]


# =============================================================================
# PARSING
# =============================================================================

def to_word(value: HexLike) -> int:
    """
    Parse a 256-bit word.

    Accepts a non-negative int, a 0x-prefixed hex string, or at most 32
    big-endian bytes.

    Raises:
        ValueError: If the value is malformed or wider than 256 bits
        TypeError: If the value has an unsupported type
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a valid word")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        text = value.strip()
        if not text.lower().startswith("0x"):
            raise ValueError(f"Hex word must start with 0x, got {value!r}")
        result = int(text, 16) if len(text) > 2 else 0
    elif isinstance(value, (bytes, bytearray)):
        if len(value) > WORD_BYTES:
            raise ValueError(
                f"Word must be at most {WORD_BYTES} bytes, got {len(value)}"
            )
        result = int.from_bytes(value, "big")
    else:
        raise TypeError(f"Cannot parse word from {type(value).__name__}")

    if not 0 <= result <= WORD_MASK:
        raise ValueError(f"Value {result} does not fit in {WORD_BITS} bits")
    return result


def to_address(value: HexLike) -> int:
    """
    Parse a 160-bit address.

    Hex strings may use any casing (like go-ethereum's HexToAddress);
    web3 normalizes them before conversion.
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a valid address")

    if isinstance(value, int):
        if not 0 <= value <= ADDRESS_MASK:
            raise ValueError(f"Address {value} does not fit in {ADDRESS_BITS} bits")
        return value

    return int(Web3.to_checksum_address(value), 16)


def format_address(value: int) -> str:
    """Render an address integer as an EIP-55 checksum string."""
    if not 0 <= value <= ADDRESS_MASK:
        raise ValueError(f"Address {value} does not fit in {ADDRESS_BITS} bits")
    return Web3.to_checksum_address(value.to_bytes(ADDRESS_BYTES, "big"))


def format_word(value: int) -> str:
    """Render a word as 0x-prefixed, zero-padded hex."""
    return "0x" + value.to_bytes(WORD_BYTES, "big").hex()


# =============================================================================
# EVENT IDENTIFIERS
# =============================================================================

def event_id(signature: str) -> int:
    """
    Compute the event identifier (topic 0) for a canonical event signature.

    Example:
        event_id("Transfer(address,address,uint256)")
    """
    if not signature or "(" not in signature or not signature.endswith(")"):
        raise ValueError(f"Not an event signature: {signature!r}")
    if any(ch.isspace() for ch in signature):
        raise ValueError(
            f"Event signature must be canonical (no whitespace): {signature!r}"
        )
    return int.from_bytes(Web3.keccak(text=signature), "big")


# =============================================================================
# STORAGE SLOT KEYS
# =============================================================================

def mapping_slot(base_slot: int, key: HexLike) -> int:
    """Slot key of `mapping[key]` for a mapping declared at `base_slot`."""
    encoded = (
        to_word(key).to_bytes(WORD_BYTES, "big")
        + to_word(base_slot).to_bytes(WORD_BYTES, "big")
    )
    return int.from_bytes(Web3.keccak(encoded), "big")


def struct_field_in_mapping(base_slot: int, offset: int, key: HexLike) -> int:
    """Slot key of field `offset` of the struct stored at `mapping[key]`."""
    if offset < 0:
        raise ValueError(f"Struct field offset must be >= 0, got {offset}")
    return (mapping_slot(base_slot, key) + offset) & WORD_MASK
