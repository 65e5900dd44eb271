"""
Token and NFT state circuits.

Storage-slot circuits read ERC-20 balances directly from the token's
`balanceOf` mapping; the slot key is recomputed from the holder address
so a prover cannot substitute another account's balance.
"""

from __future__ import annotations

from ..aggregation.aggregator import Add, Pick
from ..aggregation.extractor import BlockNumber, SlotValue, Stream
from ..circuit import Circuit, ParamSpec
from ..domain import Allocation, Param, Var
from ..keys import ADDRESS_BITS, event_id
from ..matching import MappingKey, ReceiptPattern, SlotPattern, same_log
from ..output import output_address, output_uint
from ..thresholds import AtLeast
from .common import USDC_BSC, USDC_ETHEREUM, topic


# balanceOf mapping slot of the USDC proxy on both chains
USDC_BALANCES_SLOT = 9

# 100 USDC (6 decimals)
MINIMUM_USDC_BALANCE = 100_000000

ERC721_TRANSFER = event_id("Transfer(address,address,uint256)")

HOLDER = Param("holder")


TOKEN_HOLDER = Circuit(
    name="token_holder",
    description="Holder's USDC balance on Ethereum is at least 100 USDC",
    allocation=Allocation(storage_slots=1),
    params=(ParamSpec("holder", ADDRESS_BITS),),
    slot_patterns=(
        SlotPattern(USDC_ETHEREUM, MappingKey(USDC_BALANCES_SLOT, HOLDER)),
    ),
    computations=(
        Pick("balance", SlotValue(), 0),
        Pick("block", BlockNumber(Stream.STORAGE_SLOTS), 0),
    ),
    assertions=(AtLeast(Var("balance"), MINIMUM_USDC_BALANCE),),
    outputs=(
        output_address(HOLDER, "holder"),
        output_uint(248, Var("balance"), "balance"),
        output_uint(64, Var("block"), "block"),
    ),
)


NFT = Param("nft")
OWNER = Param("owner")

NFT_OWNERSHIP = Circuit(
    name="nft_ownership",
    description="An ERC-721 Transfer moved token_id to owner",
    allocation=Allocation(receipts=1),
    params=(
        ParamSpec("nft", ADDRESS_BITS),
        ParamSpec("owner", ADDRESS_BITS),
        ParamSpec("token_id"),
    ),
    receipt_patterns=(
        ReceiptPattern(
            fields=(
                topic(NFT, ERC721_TRANSFER, 2, value=OWNER),
                topic(NFT, ERC721_TRANSFER, 3, value=Param("token_id")),
            ),
            where=same_log(0, 1),
        ),
    ),
    computations=(Pick("block", BlockNumber(Stream.RECEIPTS), 0),),
    outputs=(
        output_address(OWNER, "owner"),
        output_address(NFT, "nft"),
        output_uint(248, Param("token_id"), "token_id"),
        output_uint(64, Var("block"), "block"),
    ),
)


MULTI_CHAIN_BALANCE = Circuit(
    name="multi_chain_balance",
    description="Holder's combined USDC balance on Ethereum and BSC meets a minimum",
    allocation=Allocation(storage_slots=2),
    params=(ParamSpec("holder", ADDRESS_BITS), ParamSpec("min_total")),
    slot_patterns=(
        SlotPattern(USDC_ETHEREUM, MappingKey(USDC_BALANCES_SLOT, HOLDER)),
        SlotPattern(USDC_BSC, MappingKey(USDC_BALANCES_SLOT, HOLDER)),
    ),
    computations=(
        Pick("ethereum", SlotValue(), 0),
        Pick("bsc", SlotValue(), 1),
        Add("total", (Var("ethereum"), Var("bsc"))),
    ),
    assertions=(AtLeast(Var("total"), Param("min_total")),),
    outputs=(
        output_address(HOLDER, "holder"),
        output_uint(248, Var("ethereum"), "ethereum"),
        output_uint(248, Var("bsc"), "bsc"),
        output_uint(248, Var("total"), "total"),
        output_uint(248, Param("min_total"), "min_total"),
    ),
)
