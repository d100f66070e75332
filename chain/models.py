# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/models.py
# Purpose: Decoded event records and rendered outputs
# =============================================================================
#
# OrderFilledLog holds raw integers straight from the log.
# TradeOutput and MarketInfo are display/JSON shapes: hex and decimal strings,
# camelCase keys in to_dict().
#
# =============================================================================

from dataclasses import dataclass
from typing import Any, Dict, Optional

from shared.enums import TradeSide

__all__ = ["OrderFilledLog", "TradeOutput", "MarketInfo", "TradeSide"]


@dataclass(frozen=True)
class OrderFilledLog:
    """One decoded OrderFilled event."""
    order_hash: str
    maker: str
    taker: str
    maker_asset_id: int
    taker_asset_id: int
    maker_amount_filled: int
    taker_amount_filled: int
    fee: int
    # Metadata
    tx_hash: str
    log_index: int
    block_number: int
    exchange: str

    @property
    def is_buy(self) -> bool:
        return self.maker_asset_id == 0

    @property
    def token_id(self) -> int:
        """The non-collateral asset of the fill."""
        return self.taker_asset_id if self.maker_asset_id == 0 else self.maker_asset_id


@dataclass
class TradeOutput:
    """Trade as shown to the user."""
    tx_hash: str
    log_index: int
    exchange: str
    maker: str
    taker: str
    maker_asset_id: str
    taker_asset_id: str
    maker_amount_filled: str
    taker_amount_filled: str
    maker_decimals: int
    taker_decimals: int
    price: str
    token_id: str
    side: TradeSide
    block_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict (camelCase)."""
        return {
            "txHash": self.tx_hash,
            "logIndex": self.log_index,
            "exchange": self.exchange,
            "maker": self.maker,
            "taker": self.taker,
            "makerAssetId": self.maker_asset_id,
            "takerAssetId": self.taker_asset_id,
            "makerAmountFilled": self.maker_amount_filled,
            "takerAmountFilled": self.taker_amount_filled,
            "makerDecimals": self.maker_decimals,
            "takerDecimals": self.taker_decimals,
            "price": self.price,
            "tokenId": self.token_id,
            "side": self.side.value,
        }


@dataclass
class MarketInfo:
    """
    A condition discovered from a ConditionPreparation event.

    condition_id is the value emitted on chain. condition_id_verified records
    whether local derivation reproduced it.
    """
    condition_id: str
    question_id: str
    oracle: str
    outcome_slot_count: int
    collateral_token: str
    yes_token_id: str
    no_token_id: str
    condition_id_verified: bool = True
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict (camelCase)."""
        return {
            "conditionId": self.condition_id,
            "questionId": self.question_id,
            "oracle": self.oracle,
            "outcomeSlotCount": self.outcome_slot_count,
            "collateralToken": self.collateral_token,
            "yesTokenId": self.yes_token_id,
            "noTokenId": self.no_token_id,
            "conditionIdVerified": self.condition_id_verified,
            "blockNumber": self.block_number,
            "txHash": self.tx_hash,
        }
