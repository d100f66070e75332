# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/consts.py
# Purpose: Contract addresses, event signatures and curve constants
# =============================================================================
#
# All addresses are Polygon mainnet. Topic hashes are derived from the
# signatures at import time so the two can never drift apart.
#
# =============================================================================

from web3 import Web3

# -----------------------------------------------------------------------------
# NETWORK
# -----------------------------------------------------------------------------

POLYGON_RPC_URL: str = "https://polygon-rpc.com"

# -----------------------------------------------------------------------------
# CONTRACTS
# -----------------------------------------------------------------------------

# CTF Exchange (emits OrderFilled)
EXCHANGE_PROXY_ADDRESS: str = "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E"

# Conditional Tokens Framework (emits ConditionPreparation)
CTF_ADDRESS: str = "0x4D97DCd97eC945f40cF65F87097ACe5EA0476045"

# USDC.e - collateral for every Polymarket position
USDC_ADDRESS: str = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
USDC_DECIMALS: int = 6

# Oracles that prepare Polymarket conditions
UMA_CTF_ADAPTER_ADDRESS: str = "0x157Ce2d672854c848c9b79C49a8Cc6cc89176a49"
NEG_RISK_ADAPTER_ADDRESS: str = "0xd91E80cF2E7be2e162c6513ceD06f1dD0dA35296"

KNOWN_ORACLES: dict = {
    "uma_ctf_adapter": UMA_CTF_ADAPTER_ADDRESS,
    "neg_risk_adapter": NEG_RISK_ADAPTER_ADDRESS,
}

# Neg-risk positions are split from wrapped USDC.e, not USDC.e itself
NEG_RISK_WRAPPED_COLLATERAL_ADDRESS: str = "0x3A3BD7bb9528E159577F7C2e685CC81A765002E2"

# Used when an asset's decimals cannot be resolved
DEFAULT_TOKEN_DECIMALS: int = 18

# -----------------------------------------------------------------------------
# EVENTS
# -----------------------------------------------------------------------------

# event OrderFilled(bytes32 indexed orderHash, address indexed maker,
#                   address indexed taker, uint256 makerAssetId,
#                   uint256 takerAssetId, uint256 makerAmountFilled,
#                   uint256 takerAmountFilled, uint256 fee)
ORDER_FILLED_EVENT_SIGNATURE: str = (
    "OrderFilled(bytes32,address,address,uint256,uint256,uint256,uint256,uint256)"
)

# event ConditionPreparation(bytes32 indexed conditionId, address indexed oracle,
#                            bytes32 indexed questionId, uint256 outcomeSlotCount)
CONDITION_PREPARATION_EVENT_SIGNATURE: str = (
    "ConditionPreparation(bytes32,address,bytes32,uint256)"
)

# ERC-20 Transfer(address indexed from, address indexed to, uint256 value)
TRANSFER_EVENT_SIGNATURE: str = "Transfer(address,address,uint256)"

ORDER_FILLED_TOPIC: str = Web3.to_hex(Web3.keccak(text=ORDER_FILLED_EVENT_SIGNATURE))
CONDITION_PREPARATION_TOPIC: str = Web3.to_hex(
    Web3.keccak(text=CONDITION_PREPARATION_EVENT_SIGNATURE)
)
TRANSFER_TOPIC: str = Web3.to_hex(Web3.keccak(text=TRANSFER_EVENT_SIGNATURE))

# ERC-20 decimals() selector
DECIMALS_SELECTOR: str = "0x313ce567"

# OrderFilled data: 4 required uint256 words, then the optional fee word
ORDER_FILLED_MIN_DATA_BYTES: int = 128
ORDER_FILLED_FEE_DATA_BYTES: int = 160

# -----------------------------------------------------------------------------
# ALT_BN128 (used by CTF collection IDs)
# -----------------------------------------------------------------------------

BN128_FIELD_MODULUS: int = (
    21888242871839275222246405745257275088696311157297823662689037894645226208583
)
BN128_CURVE_B: int = 3

ZERO_BYTES32: bytes = b"\x00" * 32
