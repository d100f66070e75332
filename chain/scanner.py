# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/scanner.py
# Purpose: Decode exchange fills and CTF condition events from Polygon
# =============================================================================
#
# TWO EVENT FAMILIES:
# - OrderFilled (CTF Exchange)          -> TradeOutput
# - ConditionPreparation (CTF contract) -> MarketInfo
#
# Emitted events are the source of truth. Locally derived condition IDs are
# checked against them and the result is recorded on the MarketInfo.
#
# DECIMALS RESOLUTION (trades):
# 1. Asset ID 0 is collateral (USDC, 6 decimals)
# 2. Otherwise call decimals() on the low 20 bytes of the asset ID
# 3. Otherwise match the filled amount against ERC-20 Transfer values in the
#    receipt and query the transferring token
# 4. Otherwise fall back to 18
#
# =============================================================================

import time
import logging
from typing import Any, Dict, List, Optional

from web3.exceptions import ContractLogicError

from .consts import (
    CONDITION_PREPARATION_TOPIC,
    CTF_ADDRESS,
    DECIMALS_SELECTOR,
    DEFAULT_TOKEN_DECIMALS,
    EXCHANGE_PROXY_ADDRESS,
    NEG_RISK_ADAPTER_ADDRESS,
    NEG_RISK_WRAPPED_COLLATERAL_ADDRESS,
    ORDER_FILLED_FEE_DATA_BYTES,
    ORDER_FILLED_MIN_DATA_BYTES,
    ORDER_FILLED_TOPIC,
    TRANSFER_TOPIC,
    USDC_ADDRESS,
    USDC_DECIMALS,
)
from .exceptions import DecodeError, RpcError, ScanError
from .ids import binary_position_ids, get_condition_id
from .models import MarketInfo, OrderFilledLog, TradeOutput
from .rpc import RpcClient
from .utils import (
    BytesLike,
    calculate_price,
    format_address,
    to_hex32,
    topic_to_address,
    uint_to_address,
    word_to_int,
)
from shared.enums import TradeSide

logger = logging.getLogger(__name__)


def _log_data(log: Any) -> bytes:
    data = log.get("data") or b""
    if isinstance(data, str):
        data = data[2:] if data[:2].lower() == "0x" else data
        return bytes.fromhex(data)
    return bytes(data)


def _log_topics(log: Any) -> List[Any]:
    return list(log.get("topics") or [])


def _topic0_is(log: Any, topic: str) -> bool:
    topics = _log_topics(log)
    return bool(topics) and to_hex32(topics[0]) == topic


def _optional_hex32(value: Any) -> Optional[str]:
    return to_hex32(value) if value is not None else None


class Scanner:
    """
    Reads Polymarket activity from Polygon event logs.

    All network access goes through RpcClient. The scanner itself is
    stateless apart from a per-instance decimals cache.
    """

    DEFAULT_LOG_CHUNK = 2000  # blocks per eth_getLogs request

    def __init__(
        self,
        rpc: RpcClient,
        exchange_address: str = EXCHANGE_PROXY_ADDRESS,
        ctf_address: str = CTF_ADDRESS,
        collateral_address: str = USDC_ADDRESS,
        log_chunk_size: int = DEFAULT_LOG_CHUNK,
        neg_risk_adapter_address: str = NEG_RISK_ADAPTER_ADDRESS,
        neg_risk_collateral_address: str = NEG_RISK_WRAPPED_COLLATERAL_ADDRESS,
    ):
        """
        Args:
            rpc: JSON-RPC client
            exchange_address: Contract emitting OrderFilled
            ctf_address: ConditionalTokens contract emitting ConditionPreparation
            collateral_address: Collateral token used for position IDs
            log_chunk_size: Max blocks per eth_getLogs request
            neg_risk_adapter_address: Oracle of neg-risk conditions
            neg_risk_collateral_address: Collateral used for neg-risk position IDs
        """
        self.rpc = rpc
        self.exchange_address = format_address(exchange_address)
        self.ctf_address = format_address(ctf_address)
        self.collateral_address = format_address(collateral_address)
        self.log_chunk_size = log_chunk_size
        self.neg_risk_adapter_address = format_address(neg_risk_adapter_address)
        self.neg_risk_collateral_address = format_address(neg_risk_collateral_address)
        self._decimals_cache: Dict[str, Optional[int]] = {}

    @classmethod
    def from_config(cls, config) -> "Scanner":
        """Build a scanner (and its RPC client) from a ScannerConfig."""
        rpc = RpcClient(
            rpc_url=config.rpc_url,
            timeout=config.rpc_timeout,
            max_retries=config.max_retries,
        )
        return cls(
            rpc,
            exchange_address=config.exchange_address,
            ctf_address=config.ctf_address,
            collateral_address=config.collateral_address,
            log_chunk_size=config.log_chunk_size,
            neg_risk_adapter_address=config.neg_risk_adapter_address,
            neg_risk_collateral_address=config.neg_risk_collateral_address,
        )

    # =========================================================================
    # TRADES
    # =========================================================================

    def fetch_events(self, from_block: int, to_block: int) -> List[TradeOutput]:
        """Decode every OrderFilled event in [from_block, to_block]."""
        params = {
            "address": self.exchange_address,
            "topics": [ORDER_FILLED_TOPIC],
        }
        logs = self.rpc.get_logs_chunked(params, from_block, to_block, self.log_chunk_size)
        logger.info(f"Found {len(logs)} OrderFilled logs in blocks {from_block}-{to_block}")
        return self._process_logs(logs)

    def fetch_tx_events(self, tx_hash: BytesLike) -> List[TradeOutput]:
        """
        Decode the OrderFilled events of a single transaction.

        Raises:
            ScanError: If the receipt does not exist
        """
        receipt = self._require_receipt(tx_hash)

        logs = [
            log for log in receipt["logs"]
            if self._is_from(log, self.exchange_address)
            and _topic0_is(log, ORDER_FILLED_TOPIC)
        ]
        return self._process_logs(logs)

    # =========================================================================
    # MARKETS
    # =========================================================================

    def fetch_market_info(self, tx_hash: BytesLike) -> Optional[MarketInfo]:
        """
        First ConditionPreparation event in a transaction, if any.

        Raises:
            ScanError: If the receipt does not exist
        """
        receipt = self._require_receipt(tx_hash)

        for log in receipt["logs"]:
            if not _topic0_is(log, CONDITION_PREPARATION_TOPIC):
                continue
            if len(_log_topics(log)) < 4:
                continue
            return self._market_from_log(log)

        return None

    def fetch_market_info_by_condition_id(
        self,
        condition_id: BytesLike,
        from_block: Optional[int] = None,
    ) -> Optional[MarketInfo]:
        """
        Find the ConditionPreparation event for a condition ID.

        Args:
            condition_id: bytes32 condition ID (topic1 of the event)
            from_block: First block to search (default 0, slow on public RPCs)
        """
        condition_hex = to_hex32(condition_id)
        params = {
            "address": self.ctf_address,
            "topics": [CONDITION_PREPARATION_TOPIC, condition_hex],
            "fromBlock": from_block if from_block is not None else 0,
            "toBlock": "latest",
        }

        for log in self.rpc.get_logs(params):
            if len(_log_topics(log)) < 4:
                continue

            market = self._market_from_log(log)
            if not market.condition_id_verified:
                logger.warning(
                    f"Calculated condition ID mismatch for {condition_hex} "
                    f"(oracle={market.oracle}, question={market.question_id})"
                )
            return market

        logger.info(f"No ConditionPreparation event for {condition_hex}")
        return None

    def fetch_market_events(self, from_block: int, to_block: int) -> List[MarketInfo]:
        """Every ConditionPreparation event in [from_block, to_block]."""
        params = {
            "address": self.ctf_address,
            "topics": [CONDITION_PREPARATION_TOPIC],
        }
        logs = self.rpc.get_logs_chunked(params, from_block, to_block, self.log_chunk_size)

        markets = []
        for log in logs:
            if len(_log_topics(log)) < 4:
                continue
            try:
                markets.append(self._market_from_log(log))
            except DecodeError as e:
                logger.warning(f"Skipping malformed ConditionPreparation log: {e}")

        return markets

    def find_recent_market(
        self,
        end_block: Optional[int] = None,
        chunk_size: int = 50,
        max_iterations: int = 100,
        delay_seconds: float = 2.0,
    ) -> Optional[MarketInfo]:
        """
        Walk backwards from end_block until a chunk contains a new condition.

        Returns:
            Latest market of the first non-empty chunk, or None
        """
        current = end_block if end_block is not None else self.rpc.block_number()
        logger.info(f"Starting iterative scan from block {current}")

        for _ in range(max_iterations):
            start = max(current - chunk_size + 1, 0)

            try:
                markets = self.fetch_market_events(start, current)
            except RpcError as e:
                logger.warning(f"Error scanning {start}-{current}: {e}")
            else:
                if markets:
                    logger.info(f"Found market in block range {start}-{current}")
                    return markets[-1]

            if start == 0:
                break
            current = start - 1

            if delay_seconds > 0:
                time.sleep(delay_seconds)

        logger.info(f"No markets found after scanning {chunk_size * max_iterations} blocks")
        return None

    # =========================================================================
    # DECIMALS
    # =========================================================================

    def get_decimals(self, token: str) -> Optional[int]:
        """
        ERC-20 decimals() of a token.

        Returns None for reverts, RPC failures, empty return data (EOAs)
        and values that cannot be decimals.
        """
        try:
            result = self.rpc.call(token, DECIMALS_SELECTOR)
        except (ContractLogicError, RpcError) as e:
            logger.debug(f"decimals() failed for {token}: {e}")
            return None

        if len(result) < 32:
            return None

        value = word_to_int(result, 0)
        if value > 255:
            return None
        return value

    def _cached_decimals(self, token: str) -> Optional[int]:
        if token not in self._decimals_cache:
            self._decimals_cache[token] = self.get_decimals(token)
        return self._decimals_cache[token]

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_receipt(self, tx_hash: BytesLike) -> Any:
        tx_hex = to_hex32(tx_hash)
        receipt = self.rpc.get_transaction_receipt(tx_hex)
        if receipt is None:
            raise ScanError("Transaction receipt not found", context=tx_hex)
        return receipt

    @staticmethod
    def _is_from(log: Any, address: str) -> bool:
        emitter = log.get("address")
        if not emitter:
            return False
        return format_address(emitter) == address

    def collateral_for(self, oracle: str) -> str:
        """Neg-risk conditions are split from wrapped collateral."""
        if format_address(oracle) == self.neg_risk_adapter_address:
            return self.neg_risk_collateral_address
        return self.collateral_address

    def _market_from_log(self, log: Any) -> MarketInfo:
        """
        Build MarketInfo from a ConditionPreparation log.

        Token IDs are derived from the emitted condition ID.

        Raises:
            DecodeError: If the log payload is malformed
        """
        topics = _log_topics(log)
        try:
            condition_id = to_hex32(topics[1])
            oracle = topic_to_address(topics[2])
            question_id = to_hex32(topics[3])
            outcome_slot_count = word_to_int(_log_data(log), 0)
            derived = to_hex32(get_condition_id(oracle, question_id, outcome_slot_count))
        except (IndexError, ValueError) as e:
            raise DecodeError(str(e), context=_optional_hex32(log.get("transactionHash")))

        collateral = self.collateral_for(oracle)
        yes_token_id, no_token_id = binary_position_ids(condition_id, collateral)

        return MarketInfo(
            condition_id=condition_id,
            question_id=question_id,
            oracle=oracle,
            outcome_slot_count=outcome_slot_count,
            collateral_token=collateral,
            yes_token_id=hex(yes_token_id),
            no_token_id=hex(no_token_id),
            condition_id_verified=(derived == condition_id),
            block_number=log.get("blockNumber"),
            tx_hash=_optional_hex32(log.get("transactionHash")),
        )

    def _decode_order_filled(self, log: Any) -> OrderFilledLog:
        """
        Raises:
            DecodeError: If topics or data are too short
        """
        topics = _log_topics(log)
        data = _log_data(log)
        tx_hash = _optional_hex32(log.get("transactionHash"))

        if len(topics) < 4:
            raise DecodeError(f"Expected 4 topics, got {len(topics)}", context=tx_hash)
        if len(data) < ORDER_FILLED_MIN_DATA_BYTES:
            raise DecodeError(f"Data too short: {len(data)} bytes", context=tx_hash)

        return OrderFilledLog(
            order_hash=to_hex32(topics[1]),
            maker=topic_to_address(topics[2]),
            taker=topic_to_address(topics[3]),
            maker_asset_id=word_to_int(data, 0),
            taker_asset_id=word_to_int(data, 1),
            maker_amount_filled=word_to_int(data, 2),
            taker_amount_filled=word_to_int(data, 3),
            fee=word_to_int(data, 4) if len(data) >= ORDER_FILLED_FEE_DATA_BYTES else 0,
            tx_hash=tx_hash or "",
            log_index=int(log.get("logIndex") or 0),
            block_number=int(log.get("blockNumber") or 0),
            exchange=format_address(log.get("address") or self.exchange_address),
        )

    def _transfer_amounts(self, tx_hash: str) -> Dict[int, str]:
        """Map ERC-20 Transfer value -> token address for one transaction."""
        try:
            receipt = self.rpc.get_transaction_receipt(tx_hash)
        except RpcError as e:
            logger.warning(f"Could not fetch receipt {tx_hash}: {e}")
            return {}

        if receipt is None:
            return {}

        amount_map: Dict[int, str] = {}
        for log in receipt["logs"]:
            if len(_log_topics(log)) != 3 or not _topic0_is(log, TRANSFER_TOPIC):
                continue
            try:
                value = word_to_int(_log_data(log), 0)
            except ValueError:
                continue
            amount_map[value] = format_address(log["address"])
        return amount_map

    def _resolve_decimals(
        self,
        asset_id: int,
        amount: int,
        amount_map: Optional[Dict[int, str]],
    ) -> int:
        if asset_id == 0:
            return USDC_DECIMALS

        decimals = self._decimals_cache.get(uint_to_address(asset_id))
        if decimals is not None:
            return decimals

        if amount_map and amount in amount_map:
            decimals = self._cached_decimals(amount_map[amount])
            if decimals is not None:
                return decimals

        return DEFAULT_TOKEN_DECIMALS

    def _process_logs(self, logs: List[Any]) -> List[TradeOutput]:
        # 1. Decode
        fills: List[OrderFilledLog] = []
        for log in logs:
            try:
                fills.append(self._decode_order_filled(log))
            except DecodeError as e:
                logger.debug(f"Skipping log: {e}")

        # 2. Query asset IDs that may be plain token addresses
        candidates = {
            uint_to_address(asset_id)
            for fill in fills
            for asset_id in (fill.maker_asset_id, fill.taker_asset_id)
            if asset_id != 0
        }
        for token in sorted(candidates):
            self._cached_decimals(token)

        # 3. Receipts for fills whose assets are still unresolved
        unresolved_txs = {
            fill.tx_hash
            for fill in fills
            for asset_id in (fill.maker_asset_id, fill.taker_asset_id)
            if asset_id != 0
            and self._decimals_cache.get(uint_to_address(asset_id)) is None
            and fill.tx_hash
        }
        receipt_amounts = {tx: self._transfer_amounts(tx) for tx in sorted(unresolved_txs)}

        # 4. Build outputs
        trades = []
        for fill in fills:
            amount_map = receipt_amounts.get(fill.tx_hash)
            maker_decimals = self._resolve_decimals(
                fill.maker_asset_id, fill.maker_amount_filled, amount_map
            )
            taker_decimals = self._resolve_decimals(
                fill.taker_asset_id, fill.taker_amount_filled, amount_map
            )
            trades.append(self._build_trade(fill, maker_decimals, taker_decimals))

        return trades

    @staticmethod
    def _build_trade(
        fill: OrderFilledLog,
        maker_decimals: int,
        taker_decimals: int,
    ) -> TradeOutput:
        """Price is always collateral per outcome token when one side is collateral."""
        if fill.maker_asset_id == 0:
            price = calculate_price(
                fill.maker_amount_filled, maker_decimals,
                fill.taker_amount_filled, taker_decimals,
            )
            maker_asset, taker_asset = "0", hex(fill.taker_asset_id)
        elif fill.taker_asset_id == 0:
            price = calculate_price(
                fill.taker_amount_filled, taker_decimals,
                fill.maker_amount_filled, maker_decimals,
            )
            maker_asset, taker_asset = hex(fill.maker_asset_id), "0"
        else:
            price = calculate_price(
                fill.maker_amount_filled, maker_decimals,
                fill.taker_amount_filled, taker_decimals,
            )
            maker_asset, taker_asset = hex(fill.maker_asset_id), hex(fill.taker_asset_id)

        return TradeOutput(
            tx_hash=fill.tx_hash,
            log_index=fill.log_index,
            exchange=fill.exchange,
            maker=fill.maker,
            taker=fill.taker,
            maker_asset_id=maker_asset,
            taker_asset_id=taker_asset,
            maker_amount_filled=str(fill.maker_amount_filled),
            taker_amount_filled=str(fill.taker_amount_filled),
            maker_decimals=maker_decimals,
            taker_decimals=taker_decimals,
            price=price,
            token_id=hex(fill.token_id),
            side=TradeSide.BUY if fill.is_buy else TradeSide.SELL,
            block_number=fill.block_number,
        )
