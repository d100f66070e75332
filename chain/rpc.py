# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/rpc.py
# Purpose: JSON-RPC access to Polygon with retries and timeouts
# =============================================================================
#
# DESIGN:
# - Thin wrapper around a web3 HTTP provider
# - Exponential backoff for transient failures (timeouts, 5xx, rate limits)
# - Missing transactions and contract reverts are answers, not failures:
#   they are never retried
# - eth_getLogs over wide ranges is split into chunks, public RPCs cap the
#   block span per request
#
# =============================================================================

import time
import logging
from typing import Any, Callable, Dict, List, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound

from .consts import POLYGON_RPC_URL
from .exceptions import RpcError
from .utils import BytesLike, format_address, to_hex32

logger = logging.getLogger(__name__)


class RpcClient:
    """
    JSON-RPC client for Polygon.

    Features:
    - Exponential backoff retry logic
    - Configurable timeouts
    - Chunked log queries
    """

    DEFAULT_TIMEOUT = 30  # seconds
    MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0  # seconds
    MAX_BACKOFF = 30.0  # seconds

    DEFAULT_LOG_CHUNK = 2000  # blocks per eth_getLogs request

    def __init__(
        self,
        rpc_url: str = POLYGON_RPC_URL,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        web3: Optional[Web3] = None,
    ):
        """
        Initialize the RPC client.

        Args:
            rpc_url: HTTP JSON-RPC endpoint
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts per call
            web3: Pre-built Web3 instance (tests inject a fake here)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.w3 = web3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    # -------------------------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------------------------

    def block_number(self) -> int:
        """Latest block number."""
        return int(self._call("eth_blockNumber", lambda: self.w3.eth.block_number))

    def get_logs(self, filter_params: Dict[str, Any]) -> List[Any]:
        """
        Run eth_getLogs.

        Args:
            filter_params: web3 filter dict (address, topics, fromBlock, toBlock)

        Returns:
            List of log entries (AttributeDict-like)
        """
        logs = self._call("eth_getLogs", lambda: self.w3.eth.get_logs(filter_params))
        return list(logs)

    def get_logs_chunked(
        self,
        filter_params: Dict[str, Any],
        from_block: int,
        to_block: int,
        chunk_size: int = DEFAULT_LOG_CHUNK,
    ) -> List[Any]:
        """
        Run eth_getLogs over [from_block, to_block] in chunks.

        Both bounds are inclusive. Logs are returned in block order.
        """
        if to_block < from_block:
            return []
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        all_logs: List[Any] = []
        start = from_block

        while start <= to_block:
            end = min(start + chunk_size - 1, to_block)
            logger.debug(f"eth_getLogs chunk {start}-{end}")

            params = dict(filter_params)
            params["fromBlock"] = start
            params["toBlock"] = end
            all_logs.extend(self.get_logs(params))

            start = end + 1

        logger.debug(f"Fetched {len(all_logs)} logs from {from_block}-{to_block}")
        return all_logs

    def get_transaction_receipt(self, tx_hash: BytesLike) -> Optional[Any]:
        """
        Fetch a transaction receipt.

        Returns:
            Receipt, or None if the transaction is unknown to the node
        """
        tx_hex = to_hex32(tx_hash)
        try:
            return self._call(
                "eth_getTransactionReceipt",
                lambda: self.w3.eth.get_transaction_receipt(tx_hex),
            )
        except TransactionNotFound:
            logger.info(f"Transaction not found: {tx_hex}")
            return None

    def call(self, to: str, data: str) -> bytes:
        """
        eth_call against latest state.

        Raises:
            ContractLogicError: If the call reverts
            RpcError: If all retry attempts fail
        """
        tx = {"to": format_address(to), "data": data}
        result = self._call("eth_call", lambda: self.w3.eth.call(tx))
        return bytes(result)

    # -------------------------------------------------------------------------
    # RETRY LOOP
    # -------------------------------------------------------------------------

    def _call(self, method: str, fn: Callable[[], Any]) -> Any:
        """
        Invoke fn with retry logic.

        Raises:
            RpcError: If all retry attempts fail
        """
        backoff = self.INITIAL_BACKOFF
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"{method} attempt {attempt + 1}")
                return fn()

            except (TransactionNotFound, ContractLogicError):
                raise

            except Exception as e:
                last_error = e
                logger.warning(f"{method} failed on attempt {attempt + 1}: {e}")

            # Exponential backoff before retry
            if attempt < self.max_retries - 1:
                sleep_time = min(backoff, self.MAX_BACKOFF)
                logger.info(f"Retrying in {sleep_time:.1f}s...")
                time.sleep(sleep_time)
                backoff *= 2

        raise RpcError(method, last_error, self.max_retries)
