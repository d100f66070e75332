# =============================================================================
# POLYGON CTF SCANNER - SHARED ENUMS
# =============================================================================
#
# Shared vocabulary between the chain scanner, the Gamma client and the CLI.
#
# =============================================================================

from enum import Enum


class TradeSide(Enum):
    """
    Direction of an exchange fill, seen from the maker.

    BUY: Maker pays collateral (makerAssetId == 0) for outcome tokens.
    SELL: Maker gives outcome tokens.
    UNKNOWN: Side could not be determined.
    """
    BUY = "BUY"
    SELL = "SELL"
    UNKNOWN = "UNKNOWN"


class ReconcileStatus(Enum):
    """
    Outcome of comparing the Gamma API record with on-chain state.

    MATCH: API, emitted event and local derivation all agree.
    CONDITION_MISMATCH: Derived condition ID differs from the emitted / API value.
    TOKEN_MISMATCH: Condition agrees but derived token IDs differ from clobTokenIds.
    NOT_FOUND_ON_CHAIN: No ConditionPreparation event for the condition.
    NOT_FOUND_IN_API: Gamma API has no market for the condition.
    """
    MATCH = "MATCH"
    CONDITION_MISMATCH = "CONDITION_MISMATCH"
    TOKEN_MISMATCH = "TOKEN_MISMATCH"
    NOT_FOUND_ON_CHAIN = "NOT_FOUND_ON_CHAIN"
    NOT_FOUND_IN_API = "NOT_FOUND_IN_API"
