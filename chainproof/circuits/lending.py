"""
Lending protocol deposit circuits.

Both events carry the depositor as a data word, not a topic.
"""

from __future__ import annotations

from ..keys import to_address
from .common import USER, data, event, volume_circuit


DEPOSIT_CAPACITY = 30

# Aave V3: Supply(address indexed reserve, address user,
#   address indexed onBehalfOf, uint256 amount, uint16 indexed referralCode)
AAVE_SUPPLY = event("0x2b627736bca15cd5381dcf80b0bf11fd197d01a037c52b927a881a10fb73ba61")
AAVE_V3_POOL = to_address("0x87870Bca3F3fD6335C3F4ce8392D69350B4fA4E2")

# Compound V2: Mint(address minter, uint mintAmount, uint mintTokens)
COMPOUND_MINT = event("0x4c209b5fc8ad50758f13e2e1088ba56a560dff690a1c6fef26394f4c03821c4f")
COMPOUND_CUSDC = to_address("0x39AA39c021dfbaE8faC545936693aC917d5E7563")


AAVE_DEPOSITS = volume_circuit(
    name="aave_deposits",
    amount=data(AAVE_V3_POOL, AAVE_SUPPLY, 1),
    tracked=data(AAVE_V3_POOL, AAVE_SUPPLY, 0, value=USER),
    capacity=DEPOSIT_CAPACITY,
    threshold="min_deposit",
    description="Total supplied to the Aave V3 pool by the user",
)

COMPOUND_SUPPLY = volume_circuit(
    name="compound_supply",
    amount=data(COMPOUND_CUSDC, COMPOUND_MINT, 1),
    tracked=data(COMPOUND_CUSDC, COMPOUND_MINT, 0, value=USER),
    capacity=DEPOSIT_CAPACITY,
    threshold="min_supply",
    description="Total USDC supplied to Compound cUSDC by the user",
)
