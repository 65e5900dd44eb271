"""
Pattern Matcher for chainproof.

A pattern is a declarative conjunction of expected provenance attributes.
Matching is field-by-field equality with no partial credit. The one
deviation from pure conjunction is AnyOf, an explicit OR over
sub-predicates (e.g. "the user is the sender OR the recipient").

Every check reports human-readable reasons. A record matches exactly
when no reason is produced.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .domain import Operand, Param, resolve
from .evidence import LogField, Receipt, StorageSlot
from .keys import ADDRESS_MASK, WORD_MASK, format_address, format_word, struct_field_in_mapping


def _addr(value: int) -> str:
    if 0 <= value <= ADDRESS_MASK:
        return format_address(value)
    return hex(value)


def _word(value: int) -> str:
    if 0 <= value <= WORD_MASK:
        return format_word(value)
    return hex(value)


def _check(label: str, actual: int, expected: int, render=hex) -> list[str]:
    if actual == expected:
        return []
    return [f"{label} {render(actual)} != expected {render(expected)}"]


# =============================================================================
# SLOT KEYS
# =============================================================================

@dataclass(frozen=True)
class MappingKey:
    """
    Slot key of a struct field stored in a mapping.

    Resolves to keccak256(pad32(key) ++ pad32(base_slot)) + offset. The key
    is usually a parameter, e.g. the holder address being proven.
    """
    base_slot: int
    key: Operand
    offset: int = 0

    def resolve(self, params: Mapping[str, int]) -> int:
        return struct_field_in_mapping(self.base_slot, self.offset, resolve(self.key, params))


@dataclass(frozen=True)
class ArrayElement:
    """
    Slot key of an element of a fixed-size storage array whose elements
    each fill one slot: base_slot + index.
    """
    base_slot: int
    index: Operand

    def resolve(self, params: Mapping[str, int]) -> int:
        return (self.base_slot + resolve(self.index, params)) & WORD_MASK


SlotKey = Union[int, Param, MappingKey, ArrayElement]


def resolve_slot_key(key: SlotKey, params: Mapping[str, int]) -> int:
    if isinstance(key, (MappingKey, ArrayElement)):
        return key.resolve(params)
    return resolve(key, params)


# =============================================================================
# FIELD & SLOT PATTERNS
# =============================================================================

@dataclass(frozen=True)
class FieldPattern:
    """
    Expected provenance of one log field.

    `value`, when set, must equal the field's full 256-bit word. Address
    topics are left-padded words, so they compare equal to the address.
    `signed` declares the field as a two's-complement integer; unsigned
    extraction from it is refused when the circuit is defined.
    """
    contract: Operand
    event_id: Operand
    index: int
    is_topic: bool
    value: Optional[Operand] = None
    signed: bool = False

    def explain(self, field: LogField, params: Mapping[str, int]) -> list[str]:
        reasons = []
        reasons += _check("contract", field.contract, resolve(self.contract, params), _addr)
        reasons += _check("event_id", field.event_id, resolve(self.event_id, params), _word)
        if field.is_topic != self.is_topic:
            reasons.append(f"is_topic {field.is_topic} != expected {self.is_topic}")
        if field.index != self.index:
            reasons.append(f"index {field.index} != expected {self.index}")
        if self.value is not None:
            reasons += _check("value", field.value, resolve(self.value, params))
        return reasons


@dataclass(frozen=True)
class SlotPattern:
    """Expected provenance of one storage slot."""
    contract: Operand
    slot: SlotKey
    value: Optional[Operand] = None
    signed: bool = False

    def explain(self, record: StorageSlot, params: Mapping[str, int]) -> list[str]:
        reasons = []
        reasons += _check("contract", record.contract, resolve(self.contract, params), _addr)
        reasons += _check("slot", record.slot, resolve_slot_key(self.slot, params), _word)
        if self.value is not None:
            reasons += _check("value", record.value, resolve(self.value, params))
        return reasons


# =============================================================================
# RECEIPT PREDICATES
# =============================================================================

class Predicate(ABC):
    """A boolean condition over a receipt, evaluated after field patterns."""

    @abstractmethod
    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        """Return the reasons the predicate does not hold (empty if it holds)."""
        pass

    @abstractmethod
    def positions(self) -> set[int]:
        """Field positions this predicate reads."""
        pass

    def holds(self, receipt: Receipt, params: Mapping[str, int]) -> bool:
        return not self.explain(receipt, params)


@dataclass(frozen=True)
class ValueEquals(Predicate):
    """The field at `position` carries the expected value."""
    position: int
    expected: Operand

    def __post_init__(self):
        if self.position < 0:
            raise ValueError(f"Field position must be non-negative, got {self.position}")

    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        if self.position >= len(receipt):
            return [f"no field at position {self.position}"]
        return _check(
            f"field {self.position} value",
            receipt[self.position].value,
            resolve(self.expected, params),
        )

    def positions(self) -> set[int]:
        return {self.position}


@dataclass(frozen=True)
class SameLog(Predicate):
    """The fields at `members` were read from the same log entry."""
    members: tuple[int, ...]

    def __post_init__(self):
        if any(p < 0 for p in self.members):
            raise ValueError(f"Field positions must be non-negative, got {list(self.members)}")

    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        missing = [p for p in self.members if p >= len(receipt)]
        if missing:
            return [f"no field at position {p}" for p in missing]
        log_positions = {receipt[p].log_pos for p in self.members}
        if len(log_positions) > 1:
            return [f"fields {list(self.members)} come from different logs {sorted(log_positions)}"]
        return []

    def positions(self) -> set[int]:
        return set(self.members)


@dataclass(frozen=True)
class AllOf(Predicate):
    predicates: tuple[Predicate, ...]

    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        reasons = []
        for predicate in self.predicates:
            reasons += predicate.explain(receipt, params)
        return reasons

    def positions(self) -> set[int]:
        return set().union(*(p.positions() for p in self.predicates))


@dataclass(frozen=True)
class AnyOf(Predicate):
    """
    Explicit OR over two or more sub-predicates.

    Holds as soon as one alternative holds; alternatives are otherwise
    independent of each other.
    """
    predicates: tuple[Predicate, ...]

    def __post_init__(self):
        if len(self.predicates) < 2:
            raise ValueError("AnyOf needs at least two alternatives")

    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        alternatives = []
        for predicate in self.predicates:
            reasons = predicate.explain(receipt, params)
            if not reasons:
                return []
            alternatives.append("; ".join(reasons))
        return ["none of the alternatives held: " + " | ".join(alternatives)]

    def positions(self) -> set[int]:
        return set().union(*(p.positions() for p in self.predicates))


def all_of(*predicates: Predicate) -> AllOf:
    return AllOf(tuple(predicates))


def any_of(*predicates: Predicate) -> AnyOf:
    return AnyOf(tuple(predicates))


def same_log(*members: int) -> SameLog:
    return SameLog(tuple(members))


# =============================================================================
# RECEIPT PATTERN
# =============================================================================

@dataclass(frozen=True)
class ReceiptPattern:
    """
    Expected shape of one receipt.

    The receipt must carry exactly one field per FieldPattern, each field
    matching its pattern, and `where` (if any) must hold.
    """
    fields: tuple[FieldPattern, ...]
    where: Optional[Predicate] = None

    def explain(self, receipt: Receipt, params: Mapping[str, int]) -> list[str]:
        if len(receipt) != len(self.fields):
            return [f"receipt has {len(receipt)} fields, pattern expects {len(self.fields)}"]

        reasons = []
        for position, (field, pattern) in enumerate(zip(receipt.fields, self.fields)):
            reasons += [f"field {position}: {r}" for r in pattern.explain(field, params)]
        if self.where is not None:
            reasons += self.where.explain(receipt, params)
        return reasons


# =============================================================================
# MATCHER
# =============================================================================

Pattern = Union[FieldPattern, SlotPattern, ReceiptPattern]
Record = Union[LogField, StorageSlot, Receipt]


def explain_mismatch(
    record: Record,
    pattern: Pattern,
    params: Optional[Mapping[str, int]] = None,
) -> list[str]:
    """
    Explain why a record does not match a pattern.

    Returns:
        Mismatch reasons; an empty list means the record matches
    """
    if params is None:
        params = {}

    if isinstance(pattern, ReceiptPattern) and isinstance(record, Receipt):
        return pattern.explain(record, params)
    if isinstance(pattern, FieldPattern) and isinstance(record, LogField):
        return pattern.explain(record, params)
    if isinstance(pattern, SlotPattern) and isinstance(record, StorageSlot):
        return pattern.explain(record, params)

    return [f"{type(record).__name__} cannot match {type(pattern).__name__}"]


def matches(
    record: Record,
    pattern: Pattern,
    params: Optional[Mapping[str, int]] = None,
) -> bool:
    """Pure predicate: does the record match the pattern?"""
    return not explain_mismatch(record, pattern, params)
