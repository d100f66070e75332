# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/__init__.py
# Purpose: On-chain scanning and CTF identifier derivation
# =============================================================================

from .exceptions import ScannerError, RpcError, ScanError, DecodeError
from .ids import (
    get_condition_id,
    get_collection_id,
    get_position_id,
    binary_position_ids,
    collateral_for_oracle,
    diagnose_condition_id,
)
from .models import OrderFilledLog, TradeOutput, MarketInfo
from .rpc import RpcClient
from .scanner import Scanner

__all__ = [
    "ScannerError",
    "RpcError",
    "ScanError",
    "DecodeError",
    "get_condition_id",
    "get_collection_id",
    "get_position_id",
    "binary_position_ids",
    "collateral_for_oracle",
    "diagnose_condition_id",
    "OrderFilledLog",
    "TradeOutput",
    "MarketInfo",
    "RpcClient",
    "Scanner",
]
