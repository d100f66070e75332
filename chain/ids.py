# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/ids.py
# Purpose: Condition, collection and position ID derivation
# =============================================================================
#
# Mirrors CTHelpers in the ConditionalTokens contract:
#
#   conditionId  = keccak256(abi.encodePacked(oracle, questionId, outcomeSlotCount))
#   collectionId = alt_bn128 point derived from
#                  keccak256(abi.encodePacked(conditionId, indexSet)),
#                  added to the parent collection point, compressed to 32 bytes
#   positionId   = uint(keccak256(abi.encodePacked(collateralToken, collectionId)))
#
# Packed encoding matters: abi.encode pads the address to 32 bytes and
# produces a different condition ID for the same inputs.
#
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from eth_abi import encode
from web3 import Web3

from .consts import (
    BN128_CURVE_B,
    BN128_FIELD_MODULUS,
    KNOWN_ORACLES,
    NEG_RISK_ADAPTER_ADDRESS,
    NEG_RISK_WRAPPED_COLLATERAL_ADDRESS,
    USDC_ADDRESS,
    ZERO_BYTES32,
)
from .utils import BytesLike, format_address, to_bytes32, to_hex32

logger = logging.getLogger(__name__)

P = BN128_FIELD_MODULUS
B = BN128_CURVE_B

_PARITY_BIT = 1 << 254
_X_MASK = _PARITY_BIT - 1

# Index sets for a binary market under the zero parent collection
YES_INDEX_SET = 1
NO_INDEX_SET = 2

Point = Tuple[int, int]
_INFINITY: Point = (0, 0)


def _check_uint(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value <= 0 or value >= 2**256:
        raise ValueError(f"{name} must be in (0, 2**256), got {value}")
    return value


# =============================================================================
# CONDITION ID
# =============================================================================


def get_condition_id(
    oracle: str,
    question_id: BytesLike,
    outcome_slot_count: int,
) -> bytes:
    """
    Derive the condition ID the CTF contract assigns in prepareCondition().

    Args:
        oracle: Oracle address (any case)
        question_id: bytes32 question identifier
        outcome_slot_count: Number of outcome slots (2 for binary markets)

    Returns:
        32-byte condition ID
    """
    return bytes(Web3.solidity_keccak(
        ["address", "bytes32", "uint256"],
        [
            format_address(oracle),
            to_bytes32(question_id),
            _check_uint("outcome_slot_count", outcome_slot_count),
        ],
    ))


def get_condition_id_abi_encoded(
    oracle: str,
    question_id: BytesLike,
    outcome_slot_count: int,
) -> bytes:
    """Condition ID over standard (padded) ABI encoding. Does NOT match the contract."""
    return bytes(Web3.keccak(encode(
        ["address", "bytes32", "uint256"],
        [
            format_address(oracle),
            to_bytes32(question_id),
            _check_uint("outcome_slot_count", outcome_slot_count),
        ],
    )))


CONDITION_ID_ENCODINGS = {
    "packed": get_condition_id,
    "abi_encoded": get_condition_id_abi_encoded,
}


def collateral_for_oracle(oracle: str, neg_risk: bool = False) -> str:
    """Collateral token a condition's positions are split from."""
    if neg_risk or format_address(oracle) == format_address(NEG_RISK_ADAPTER_ADDRESS):
        return NEG_RISK_WRAPPED_COLLATERAL_ADDRESS
    return USDC_ADDRESS


@dataclass
class ConditionIdDiagnosis:
    """
    Result of trying every candidate (encoding, oracle) pair against a known
    condition ID.

    Candidates for the supplied oracle are keyed by encoding name
    ("packed", "abi_encoded"). Candidates for the other known oracles are
    keyed "<encoding>:<oracle name>", e.g. "packed:neg_risk_adapter".
    """
    expected: str
    oracle: str = ""
    candidates: Dict[str, str] = field(default_factory=dict)
    matches: List[str] = field(default_factory=list)
    matched_oracle: Optional[str] = None

    @property
    def matched(self) -> bool:
        return bool(self.matches)

    @property
    def contract_match(self) -> bool:
        """True if the packed encoding (what the contract computes) matched for any oracle."""
        return any(name.split(":")[0] == "packed" for name in self.matches)

    @property
    def oracle_differs(self) -> bool:
        return self.matched_oracle is not None and self.matched_oracle != self.oracle

    def to_dict(self) -> Dict[str, object]:
        return {
            "expected": self.expected,
            "oracle": self.oracle,
            "candidates": dict(self.candidates),
            "matches": list(self.matches),
            "matched": self.matched,
            "matchedOracle": self.matched_oracle,
        }


def _oracles_to_try(oracle: str) -> List[Tuple[Optional[str], str]]:
    supplied = format_address(oracle)
    oracles: List[Tuple[Optional[str], str]] = [(None, supplied)]
    for name, address in KNOWN_ORACLES.items():
        address = format_address(address)
        if address != supplied:
            oracles.append((name, address))
    return oracles


def diagnose_condition_id(
    oracle: str,
    question_id: BytesLike,
    outcome_slot_count: int,
    expected: BytesLike,
) -> ConditionIdDiagnosis:
    """
    Compute the condition ID under each candidate encoding, for the supplied
    oracle and for every other known Polymarket oracle, and report which
    (encoding, oracle) pairs reproduce the expected value.
    """
    expected_hex = to_hex32(expected)
    diagnosis = ConditionIdDiagnosis(expected=expected_hex, oracle=format_address(oracle))

    for oracle_name, address in _oracles_to_try(oracle):
        for encoding, derive in CONDITION_ID_ENCODINGS.items():
            name = encoding if oracle_name is None else f"{encoding}:{oracle_name}"
            candidate = to_hex32(derive(address, question_id, outcome_slot_count))
            diagnosis.candidates[name] = candidate
            if candidate != expected_hex:
                continue
            diagnosis.matches.append(name)
            if encoding == "packed" and diagnosis.matched_oracle is None:
                diagnosis.matched_oracle = address

    if not diagnosis.matched:
        logger.warning(f"No encoding reproduces condition ID {expected_hex}")
    elif diagnosis.oracle_differs:
        logger.warning(
            f"Condition ID {expected_hex} was prepared by oracle "
            f"{diagnosis.matched_oracle}, not {diagnosis.oracle}"
        )
    else:
        logger.debug(f"Condition ID {expected_hex} matched by {diagnosis.matches}")

    return diagnosis


# =============================================================================
# ALT_BN128 HELPERS
# =============================================================================


def _sqrt_mod(value: int) -> int:
    # P = 3 mod 4, so a square root (if one exists) is value^((P+1)/4)
    return pow(value, (P + 1) // 4, P)


def _curve_rhs(x: int) -> int:
    return (x * x * x + B) % P


def ec_add(p1: Point, p2: Point) -> Point:
    """Affine point addition on alt_bn128, (0, 0) as the point at infinity."""
    if p1 == _INFINITY:
        return p2
    if p2 == _INFINITY:
        return p1

    x1, y1 = p1
    x2, y2 = p2

    if x1 == x2:
        if (y1 + y2) % P == 0:
            return _INFINITY
        slope = (3 * x1 * x1) * pow((2 * y1) % P, -1, P) % P
    else:
        slope = (y2 - y1) * pow((x2 - x1) % P, -1, P) % P

    x3 = (slope * slope - x1 - x2) % P
    y3 = (slope * (x1 - x3) - y1) % P
    return x3, y3


def decode_collection_point(collection_id: BytesLike) -> Point:
    """
    Decompress a non-zero collection ID into its curve point.

    Raises:
        ValueError: If the ID does not encode a point on alt_bn128
    """
    raw = int.from_bytes(to_bytes32(collection_id), "big")
    odd = (raw >> 254) != 0
    x = raw & _X_MASK

    if x >= P:
        raise ValueError("invalid parent collection ID")

    yy = _curve_rhs(x)
    y = _sqrt_mod(yy)
    if (odd and y % 2 == 0) or (not odd and y % 2 == 1):
        y = P - y

    if (y * y) % P != yy:
        raise ValueError("invalid parent collection ID")
    return x, y


def _hash_to_point(condition_id: bytes, index_set: int) -> Point:
    digest = Web3.solidity_keccak(["bytes32", "uint256"], [condition_id, index_set])
    x = int.from_bytes(digest, "big")
    odd = (x >> 255) != 0

    while True:
        x = (x + 1) % P
        yy = _curve_rhs(x)
        y = _sqrt_mod(yy)
        if (y * y) % P == yy:
            break

    if (odd and y % 2 == 0) or (not odd and y % 2 == 1):
        y = P - y
    return x, y


# =============================================================================
# COLLECTION / POSITION IDS
# =============================================================================


def get_collection_id(
    parent_collection_id: BytesLike,
    condition_id: BytesLike,
    index_set: int,
) -> bytes:
    """
    Derive the collection ID for an index set of a condition.

    Args:
        parent_collection_id: bytes32 parent (zero for top-level positions)
        condition_id: bytes32 condition ID
        index_set: Bitmask of outcome slots (1 = first slot, 2 = second, ...)

    Returns:
        32-byte collection ID
    """
    point = _hash_to_point(to_bytes32(condition_id), _check_uint("index_set", index_set))

    parent = to_bytes32(parent_collection_id)
    if parent != ZERO_BYTES32:
        point = ec_add(point, decode_collection_point(parent))

    x, y = point
    if y % 2 == 1:
        x ^= _PARITY_BIT
    return x.to_bytes(32, "big")


def get_position_id(collateral_token: str, collection_id: BytesLike) -> int:
    """Derive the ERC-1155 position (token) ID for a collection."""
    digest = Web3.solidity_keccak(
        ["address", "bytes32"],
        [format_address(collateral_token), to_bytes32(collection_id)],
    )
    return int.from_bytes(digest, "big")


def binary_position_ids(
    condition_id: BytesLike,
    collateral_token: str = USDC_ADDRESS,
    parent_collection_id: Optional[BytesLike] = None,
) -> Tuple[int, int]:
    """
    YES / NO token IDs for a binary condition.

    Returns:
        (yes_token_id, no_token_id)
    """
    parent = ZERO_BYTES32 if parent_collection_id is None else parent_collection_id
    yes_collection = get_collection_id(parent, condition_id, YES_INDEX_SET)
    no_collection = get_collection_id(parent, condition_id, NO_INDEX_SET)
    return (
        get_position_id(collateral_token, yes_collection),
        get_position_id(collateral_token, no_collection),
    )
