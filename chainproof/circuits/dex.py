"""
DEX activity circuits: swap volume, liquidity provision and TWAP.

Uniswap V2 and its forks (SushiSwap, PancakeSwap) share one event
layout, so each fork is the same circuit pointed at a different pair.

    Swap(address indexed sender, uint amount0In, uint amount1In,
         uint amount0Out, uint amount1Out, address indexed to)
    Mint(address indexed sender, uint amount0, uint amount1)
"""

from __future__ import annotations

from ..aggregation.aggregator import Add, Count, Pick, Sub, Sum
from ..aggregation.extractor import BlockNumber, Encoding, FieldValue, SlotValue, Stream
from ..circuit import Circuit, ParamSpec
from ..domain import Allocation, Param, Var
from ..keys import ADDRESS_BITS, to_address
from ..matching import ArrayElement, ReceiptPattern, SlotPattern, ValueEquals, any_of
from ..output import output_address, output_int, output_uint
from ..thresholds import AtLeast, Within
from .common import USER, USER_PARAM, data, event, topic, volume_circuit


SWAP_CAPACITY = 50
LIQUIDITY_CAPACITY = 20

# Uniswap V2 style events
V2_SWAP = event("0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822")
V2_MINT = event("0x4c209b5fc8ad50758f13e2e1088ba56a560dff690a1c6fef26394f4c03821c4f")

UNISWAP_V2_USDC_WETH = to_address("0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc")
SUSHISWAP_USDC_WETH = to_address("0x397FF1542f962076d0BFE58eA045FfA2d347ACa0")
PANCAKESWAP_BUSD_WBNB = to_address("0x58F876857a02D6762E0101bb5C46A8c1ED44Dc16")

# Uniswap V3: Swap(address indexed sender, address indexed recipient,
#   int256 amount0, int256 amount1, uint160 sqrtPriceX96, uint128 liquidity, int24 tick)
V3_SWAP = event("0xc42079f94a6350d7e6235f29174924f928cc2ac818eb64fed8004e115fbcca67")
UNISWAP_V3_USDC_WETH_005 = to_address("0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640")

# Curve: TokenExchange(address indexed buyer, int128 sold_id,
#   uint256 tokens_sold, int128 bought_id, uint256 tokens_bought)
CURVE_TOKEN_EXCHANGE = event("0x8b3e96f2b889fa771c53c981b40daf005f63f637f1869f707052d15a3dd97140")
CURVE_3POOL = to_address("0xbEbc44782C7dB0a1A60Cb6fe97d0b483032FF1C7")

# Balancer: Swap(bytes32 indexed poolId, address indexed tokenIn,
#   address indexed tokenOut, uint256 amountIn, uint256 amountOut)
BALANCER_SWAP = event("0x2170c741c41531aec20e7c107c24eecfdd15e69c9bb0a8dd37b1840b9e0b207b")
BALANCER_VAULT = to_address("0xBA12222222228d8Ba445958a75a0704d566BF2C8")

# UniswapV2Pair storage
PRICE1_CUMULATIVE_LAST_SLOT = 9


# =============================================================================
# SWAP VOLUME
# =============================================================================

def v2_swap_volume(name: str, pair: int) -> Circuit:
    """Total amount1Out received by the user from one pair."""
    return volume_circuit(
        name=name,
        amount=data(pair, V2_SWAP, 3),
        tracked=topic(pair, V2_SWAP, 2, value=USER),
        capacity=SWAP_CAPACITY,
        description="Swap volume (amount1Out) received by the user",
    )


def v2_bidirectional_volume(name: str, pair: int) -> Circuit:
    """
    Volume in both directions, for swaps where the user is the sender
    or the recipient.

    Outputs:
        [user][volume_in: uint248][volume_out: uint248][total: uint248][count: uint64]
    """
    return Circuit(
        name=name,
        description="Bidirectional swap volume for a user acting as sender or recipient",
        allocation=Allocation(receipts=SWAP_CAPACITY),
        params=(USER_PARAM, ParamSpec("min_volume_in"), ParamSpec("min_volume_out")),
        receipt_patterns=(
            ReceiptPattern(
                fields=(
                    data(pair, V2_SWAP, 1),
                    data(pair, V2_SWAP, 3),
                    topic(pair, V2_SWAP, 1),
                    topic(pair, V2_SWAP, 2),
                ),
                where=any_of(ValueEquals(2, USER), ValueEquals(3, USER)),
            ),
        ),
        computations=(
            Sum("volume_in", FieldValue(0)),
            Sum("volume_out", FieldValue(1)),
            Add("total", (Var("volume_in"), Var("volume_out"))),
            Count("count", Stream.RECEIPTS),
        ),
        assertions=(
            AtLeast(Var("volume_in"), Param("min_volume_in")),
            AtLeast(Var("volume_out"), Param("min_volume_out")),
        ),
        outputs=(
            output_address(USER, "user"),
            output_uint(248, Var("volume_in"), "volume_in"),
            output_uint(248, Var("volume_out"), "volume_out"),
            output_uint(248, Var("total"), "total"),
            output_uint(64, Var("count"), "count"),
        ),
    )


UNISWAP_V2_VOLUME = v2_swap_volume("uniswap_v2_volume", UNISWAP_V2_USDC_WETH)
SUSHISWAP_VOLUME = v2_swap_volume("sushiswap_volume", SUSHISWAP_USDC_WETH)
PANCAKESWAP_VOLUME = v2_swap_volume("pancakeswap_volume", PANCAKESWAP_BUSD_WBNB)

UNISWAP_V2_BIDIRECTIONAL = v2_bidirectional_volume("uniswap_v2_bidirectional", UNISWAP_V2_USDC_WETH)
SUSHISWAP_BIDIRECTIONAL = v2_bidirectional_volume("sushiswap_bidirectional", SUSHISWAP_USDC_WETH)

# amount1 is signed; its magnitude is the volume in either direction
UNISWAP_V3_VOLUME = volume_circuit(
    name="uniswap_v3_volume",
    amount=data(UNISWAP_V3_USDC_WETH_005, V3_SWAP, 1, signed=True),
    tracked=topic(UNISWAP_V3_USDC_WETH_005, V3_SWAP, 2, value=USER),
    capacity=SWAP_CAPACITY,
    encoding=Encoding.ABS_INT,
    description="Absolute WETH volume of swaps paid to the user",
)

CURVE_VOLUME = volume_circuit(
    name="curve_volume",
    amount=data(CURVE_3POOL, CURVE_TOKEN_EXCHANGE, 3),
    tracked=topic(CURVE_3POOL, CURVE_TOKEN_EXCHANGE, 1, value=USER),
    capacity=SWAP_CAPACITY,
    description="tokens_bought by the user on the Curve 3pool",
)

BALANCER_VOLUME = volume_circuit(
    name="balancer_volume",
    amount=data(BALANCER_VAULT, BALANCER_SWAP, 1),
    # tokenOut; binds the token, not the trader
    tracked=topic(BALANCER_VAULT, BALANCER_SWAP, 3),
    capacity=SWAP_CAPACITY,
    description="amountOut through the Balancer vault; the event carries no trader field",
)


# =============================================================================
# LIQUIDITY
# =============================================================================

def v2_liquidity(name: str, pair: int) -> Circuit:
    """
    Liquidity added by the user through Mint events.

    Outputs:
        [user][amount0: uint248][amount1: uint248][count: uint64]
    """
    return Circuit(
        name=name,
        description="Token amounts the user added as liquidity",
        allocation=Allocation(receipts=LIQUIDITY_CAPACITY),
        params=(USER_PARAM, ParamSpec("min_amount0"), ParamSpec("min_amount1")),
        receipt_patterns=(
            ReceiptPattern(
                fields=(
                    topic(pair, V2_MINT, 1, value=USER),
                    data(pair, V2_MINT, 0),
                    data(pair, V2_MINT, 1),
                ),
            ),
        ),
        computations=(
            Sum("amount0", FieldValue(1)),
            Sum("amount1", FieldValue(2)),
            Count("count", Stream.RECEIPTS),
        ),
        assertions=(
            AtLeast(Var("amount0"), Param("min_amount0")),
            AtLeast(Var("amount1"), Param("min_amount1")),
        ),
        outputs=(
            output_address(USER, "user"),
            output_uint(248, Var("amount0"), "amount0"),
            output_uint(248, Var("amount1"), "amount1"),
            output_uint(64, Var("count"), "count"),
        ),
    )


UNISWAP_V2_LIQUIDITY = v2_liquidity("uniswap_v2_liquidity", UNISWAP_V2_USDC_WETH)
SUSHISWAP_LIQUIDITY = v2_liquidity("sushiswap_liquidity", SUSHISWAP_USDC_WETH)
PANCAKESWAP_LIQUIDITY = v2_liquidity("pancakeswap_liquidity", PANCAKESWAP_BUSD_WBNB)


# =============================================================================
# TWAP
# =============================================================================

PAIR = Param("pair")

UNISWAP_V2_TWAP = Circuit(
    name="uniswap_v2_twap",
    description=(
        "Growth of price1CumulativeLast between two observations of a pair "
        "falls within [min_delta, max_delta]"
    ),
    allocation=Allocation(storage_slots=2),
    params=(ParamSpec("pair", ADDRESS_BITS), ParamSpec("min_delta"), ParamSpec("max_delta")),
    slot_patterns=(SlotPattern(PAIR, PRICE1_CUMULATIVE_LAST_SLOT),),
    computations=(
        Pick("start", SlotValue(), 0),
        Pick("end", SlotValue(), -1),
        Sub("delta", Var("end"), Var("start")),
        Pick("start_block", BlockNumber(Stream.STORAGE_SLOTS), 0),
        Pick("end_block", BlockNumber(Stream.STORAGE_SLOTS), -1),
        Sub("block_range", Var("end_block"), Var("start_block"), width=64),
    ),
    assertions=(Within(Var("delta"), Param("min_delta"), Param("max_delta")),),
    outputs=(
        output_address(PAIR, "pair"),
        output_uint(248, Var("delta"), "delta"),
        output_uint(248, Param("min_delta"), "min_delta"),
        output_uint(248, Param("max_delta"), "max_delta"),
        output_uint(64, Var("block_range"), "block_range"),
    ),
)


# UniswapV3Pool keeps Oracle.Observation[65535] at slot 8, one slot each:
#   bits 0..31    uint32  blockTimestamp
#   bits 32..87   int56   tickCumulative
#   bits 88..247  uint160 secondsPerLiquidityCumulativeX128
#   bit  248      bool    initialized
OBSERVATIONS_SLOT = 8
OBSERVATION_INDEX_BITS = 16

OBSERVATION_TIMESTAMP = SlotValue(Encoding.UINT, 32, bit_offset=0, bit_width=32)
OBSERVATION_TICK_CUMULATIVE = SlotValue(Encoding.INT, 56, bit_offset=32, bit_width=56)
OBSERVATION_INITIALIZED = SlotValue(Encoding.UINT, 8, bit_offset=248, bit_width=1)

POOL = Param("pool")

UNISWAP_V3_TWAP = Circuit(
    name="uniswap_v3_twap",
    description=(
        "Growth of tickCumulative between two initialized oracle observations "
        "of a pool falls within [min_tick_delta, max_tick_delta]"
    ),
    allocation=Allocation(storage_slots=2),
    params=(
        ParamSpec("pool", ADDRESS_BITS),
        ParamSpec("start_index", OBSERVATION_INDEX_BITS),
        ParamSpec("end_index", OBSERVATION_INDEX_BITS),
        ParamSpec("min_tick_delta", signed=True),
        ParamSpec("max_tick_delta", signed=True),
    ),
    slot_patterns=(
        SlotPattern(POOL, ArrayElement(OBSERVATIONS_SLOT, Param("start_index"))),
        SlotPattern(POOL, ArrayElement(OBSERVATIONS_SLOT, Param("end_index"))),
    ),
    computations=(
        Pick("start_initialized", OBSERVATION_INITIALIZED, 0),
        Pick("end_initialized", OBSERVATION_INITIALIZED, -1),
        Pick("start_time", OBSERVATION_TIMESTAMP, 0),
        Pick("end_time", OBSERVATION_TIMESTAMP, -1),
        Sub("elapsed", Var("end_time"), Var("start_time"), width=32),
        Pick("start_tick", OBSERVATION_TICK_CUMULATIVE, 0),
        Pick("end_tick", OBSERVATION_TICK_CUMULATIVE, -1),
        Sub("tick_delta", Var("end_tick"), Var("start_tick"), signed=True),
        Pick("start_block", BlockNumber(Stream.STORAGE_SLOTS), 0),
        Pick("end_block", BlockNumber(Stream.STORAGE_SLOTS), -1),
        Sub("block_range", Var("end_block"), Var("start_block"), width=64),
    ),
    assertions=(
        AtLeast(Var("start_initialized"), 1),
        AtLeast(Var("end_initialized"), 1),
        AtLeast(Var("elapsed"), 1),
        Within(Var("tick_delta"), Param("min_tick_delta"), Param("max_tick_delta")),
    ),
    outputs=(
        output_address(POOL, "pool"),
        output_int(248, Var("tick_delta"), "tick_delta"),
        output_int(248, Param("min_tick_delta"), "min_tick_delta"),
        output_int(248, Param("max_tick_delta"), "max_tick_delta"),
        output_uint(64, Var("block_range"), "block_range"),
    ),
)
