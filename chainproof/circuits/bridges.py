"""
Cross-chain activity circuits.
"""

from __future__ import annotations

from ..aggregation.aggregator import Count
from ..aggregation.extractor import Stream
from ..circuit import Circuit, ParamSpec
from ..domain import Allocation, Param, Var
from ..keys import to_address
from ..matching import ReceiptPattern
from ..output import output_address, output_uint
from ..thresholds import AtLeast
from .common import USER, USER_PARAM, data, event, topic, volume_circuit


# Polygon PoS: LockedEther(address indexed depositor,
#   address indexed depositReceiver, uint256 amount)
POLYGON_LOCKED = event("0x9b217a401a5ddf7c4d474074aff9958a18d48690d77cc2151c4706aa7348b401")
POLYGON_ROOT_CHAIN_MANAGER = to_address("0xA0c68C638235ee32657e8f720a23ceC1bFc77C77")

# LayerZero Endpoint: PayloadStored(uint16 srcChainId, bytes srcAddress,
#   address dstAddress, uint64 nonce, bytes payload, bytes reason)
LAYERZERO_PAYLOAD_STORED = event("0xe9bded5f24a4168e4f3bf44e00298c993b22376aad8c58c7dda9718a54cbea82")
LAYERZERO_ENDPOINT_ETHEREUM = to_address("0x66A71Dcef29A0fFBDBE3c6a460a3B5BC225Cd675")


POLYGON_BRIDGE = volume_circuit(
    name="polygon_bridge",
    amount=data(POLYGON_ROOT_CHAIN_MANAGER, POLYGON_LOCKED, 0),
    tracked=topic(POLYGON_ROOT_CHAIN_MANAGER, POLYGON_LOCKED, 1, value=USER),
    capacity=30,
    threshold="min_bridged",
    description="Total bridged to Polygon by the depositor",
)


# PayloadStored carries no sender field; the count is the proven quantity
LAYERZERO_MESSAGES = Circuit(
    name="layerzero_messages",
    description="Number of LayerZero payloads stored at the Ethereum endpoint",
    allocation=Allocation(receipts=50),
    params=(USER_PARAM, ParamSpec("min_messages", 64)),
    receipt_patterns=(
        ReceiptPattern((data(LAYERZERO_ENDPOINT_ETHEREUM, LAYERZERO_PAYLOAD_STORED, 2),)),
    ),
    computations=(Count("messages", Stream.RECEIPTS),),
    assertions=(AtLeast(Var("messages"), Param("min_messages")),),
    outputs=(
        output_address(USER, "user"),
        output_uint(64, Var("messages"), "messages"),
        output_uint(64, Param("min_messages"), "min_messages"),
    ),
)
