# Circuits package for chainproof
"""
Catalogue of protocol circuits.

Each entry is an immutable Circuit value; the protocol constants inside
it are configuration, not code.
"""

from ..circuit import Circuit
from .bridges import LAYERZERO_MESSAGES, POLYGON_BRIDGE
from .dex import (
    BALANCER_VOLUME,
    CURVE_VOLUME,
    PANCAKESWAP_LIQUIDITY,
    PANCAKESWAP_VOLUME,
    SUSHISWAP_BIDIRECTIONAL,
    SUSHISWAP_LIQUIDITY,
    SUSHISWAP_VOLUME,
    UNISWAP_V2_BIDIRECTIONAL,
    UNISWAP_V2_LIQUIDITY,
    UNISWAP_V2_TWAP,
    UNISWAP_V2_VOLUME,
    UNISWAP_V3_TWAP,
    UNISWAP_V3_VOLUME,
)
from .lending import AAVE_DEPOSITS, COMPOUND_SUPPLY
from .tokens import MULTI_CHAIN_BALANCE, NFT_OWNERSHIP, TOKEN_HOLDER

CIRCUITS: dict[str, Circuit] = {
    circuit.name: circuit
    for circuit in (
        TOKEN_HOLDER,
        NFT_OWNERSHIP,
        MULTI_CHAIN_BALANCE,
        UNISWAP_V2_VOLUME,
        SUSHISWAP_VOLUME,
        PANCAKESWAP_VOLUME,
        UNISWAP_V2_BIDIRECTIONAL,
        SUSHISWAP_BIDIRECTIONAL,
        UNISWAP_V2_LIQUIDITY,
        SUSHISWAP_LIQUIDITY,
        PANCAKESWAP_LIQUIDITY,
        UNISWAP_V3_VOLUME,
        UNISWAP_V2_TWAP,
        UNISWAP_V3_TWAP,
        CURVE_VOLUME,
        BALANCER_VOLUME,
        AAVE_DEPOSITS,
        COMPOUND_SUPPLY,
        POLYGON_BRIDGE,
        LAYERZERO_MESSAGES,
    )
}


def get_circuit(name: str) -> Circuit:
    """Look up a catalogue circuit by name.

    Raises:
        KeyError: If no circuit has that name
    """
    if name not in CIRCUITS:
        raise KeyError(f"No circuit named '{name}'. Available: {sorted(CIRCUITS)}")
    return CIRCUITS[name]
