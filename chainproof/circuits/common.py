"""
Shared building blocks for the circuit catalogue.

Most protocol circuits have the same shape: every receipt is one event
from one contract, one data field carries an amount, one field binds the
event to the user, and the circuit proves the summed amount clears a
minimum. `volume_circuit` builds that shape from protocol constants.
"""

from __future__ import annotations

from typing import Optional

from ..aggregation.aggregator import Count, Sum
from ..aggregation.extractor import Encoding, FieldValue, Stream
from ..circuit import Circuit, ParamSpec
from ..domain import Allocation, Operand, Param, Var
from ..keys import ADDRESS_BITS, to_address, to_word
from ..matching import FieldPattern, ReceiptPattern
from ..output import output_address, output_uint
from ..thresholds import AtLeast


USER = Param("user")
USER_PARAM = ParamSpec("user", ADDRESS_BITS)

# USDC proxies
USDC_ETHEREUM = to_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
USDC_BSC = to_address("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d")


def data(contract: Operand, event_id: Operand, index: int, **kwargs) -> FieldPattern:
    """Pattern for a non-indexed (data) event field."""
    return FieldPattern(contract=contract, event_id=event_id, index=index, is_topic=False, **kwargs)


def topic(contract: Operand, event_id: Operand, index: int, **kwargs) -> FieldPattern:
    """Pattern for an indexed (topic) event field."""
    return FieldPattern(contract=contract, event_id=event_id, index=index, is_topic=True, **kwargs)


def event(hex_id: str) -> int:
    return to_word(hex_id)


def volume_circuit(
    name: str,
    amount: FieldPattern,
    tracked: Optional[FieldPattern],
    capacity: int,
    encoding: Encoding = Encoding.UINT,
    threshold: str = "min_volume",
    description: str = "",
) -> Circuit:
    """
    One-amount, one-user activity circuit.

    Outputs:
        [user: address][total: uint248][threshold: uint248][count: uint64]

    `tracked` is the second field of each receipt. It binds the event to
    the user when its pattern pins `value=USER`. Events with no trader
    field track some other field here (or None), and the user output is
    then the caller-supplied parameter, unbound to the evidence.
    """
    fields = (amount,) if tracked is None else (amount, tracked)
    return Circuit(
        name=name,
        allocation=Allocation(receipts=capacity),
        params=(USER_PARAM, ParamSpec(threshold)),
        receipt_patterns=(ReceiptPattern(fields),),
        computations=(
            Sum("total", FieldValue(0, encoding)),
            Count("count", Stream.RECEIPTS),
        ),
        assertions=(AtLeast(Var("total"), Param(threshold)),),
        outputs=(
            output_address(USER, "user"),
            output_uint(248, Var("total"), "total"),
            output_uint(248, Param(threshold), threshold),
            output_uint(64, Var("count"), "count"),
        ),
        description=description,
    )
