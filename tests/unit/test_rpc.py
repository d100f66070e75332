"""
UNIT TESTS - RPC CLIENT
=======================
Retry/backoff behaviour and chunked log queries against a fake web3.
"""

from unittest.mock import Mock

import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound

from chain.exceptions import RpcError, ScannerError
from chain.rpc import RpcClient
from tests.mock_chain import TX_HASH


@pytest.fixture
def w3():
    return Mock()


@pytest.fixture
def client(w3):
    return RpcClient(rpc_url="http://localhost:8545", web3=w3)


class TestRetry:

    def test_success_first_try(self, client, w3, no_sleep):
        w3.eth.get_logs.return_value = [{"logIndex": 0}]

        assert client.get_logs({}) == [{"logIndex": 0}]
        assert no_sleep == []

    def test_transient_failure_is_retried(self, client, w3, no_sleep):
        w3.eth.get_logs.side_effect = [ConnectionError("reset"), [{"logIndex": 1}]]

        assert client.get_logs({}) == [{"logIndex": 1}]
        assert w3.eth.get_logs.call_count == 2
        assert no_sleep == [1.0]

    def test_exhausted_retries_raise_rpc_error(self, client, w3, no_sleep):
        w3.eth.get_logs.side_effect = ConnectionError("down")

        with pytest.raises(RpcError) as exc_info:
            client.get_logs({})

        err = exc_info.value
        assert err.method == "eth_getLogs"
        assert err.attempts == 3
        assert isinstance(err.last_error, ConnectionError)
        assert isinstance(err, ScannerError)
        assert "[eth_getLogs]" in str(err)
        # Exponential backoff, no sleep after the last attempt
        assert no_sleep == [1.0, 2.0]

    def test_backoff_is_capped(self, w3, no_sleep):
        client = RpcClient(web3=w3, max_retries=7)
        w3.eth.get_logs.side_effect = ConnectionError("down")

        with pytest.raises(RpcError):
            client.get_logs({})

        assert no_sleep == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]

    def test_missing_transaction_is_not_retried(self, client, w3, no_sleep):
        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("unknown")

        assert client.get_transaction_receipt(TX_HASH) is None
        assert w3.eth.get_transaction_receipt.call_count == 1
        assert no_sleep == []

    def test_revert_is_not_retried(self, client, w3, no_sleep):
        w3.eth.call.side_effect = ContractLogicError("execution reverted")

        with pytest.raises(ContractLogicError):
            client.call("0x" + "33" * 20, "0x313ce567")

        assert w3.eth.call.call_count == 1
        assert no_sleep == []


class TestCalls:

    def test_block_number(self, client, w3):
        w3.eth.block_number = 81_000_000
        assert client.block_number() == 81_000_000

    def test_receipt_uses_normalised_hash(self, client, w3):
        w3.eth.get_transaction_receipt.return_value = {"logs": []}

        client.get_transaction_receipt(TX_HASH.upper().replace("0X", "0x"))

        w3.eth.get_transaction_receipt.assert_called_once_with(TX_HASH)

    def test_receipt_rejects_bad_hash(self, client, w3):
        with pytest.raises(ValueError):
            client.get_transaction_receipt("0x1234")
        w3.eth.get_transaction_receipt.assert_not_called()

    def test_call_checksums_target_and_returns_bytes(self, client, w3):
        w3.eth.call.return_value = bytearray(b"\x00" * 31 + b"\x06")

        result = client.call("0x" + "ab" * 20, "0x313ce567")

        assert result == b"\x00" * 31 + b"\x06"
        assert isinstance(result, bytes)
        tx = w3.eth.call.call_args[0][0]
        assert tx["to"] == Web3.to_checksum_address("0x" + "ab" * 20)
        assert tx["data"] == "0x313ce567"


class TestChunkedLogs:

    def test_chunks_are_inclusive_and_contiguous(self, client, w3):
        w3.eth.get_logs.side_effect = lambda params: [(params["fromBlock"], params["toBlock"])]

        logs = client.get_logs_chunked({"address": "0xabc"}, 0, 25, chunk_size=10)

        assert logs == [(0, 9), (10, 19), (20, 25)]

    def test_filter_params_are_not_mutated(self, client, w3):
        w3.eth.get_logs.return_value = []
        params = {"address": "0xabc", "topics": ["0x01"]}

        client.get_logs_chunked(params, 100, 150, chunk_size=20)

        assert params == {"address": "0xabc", "topics": ["0x01"]}
        sent = w3.eth.get_logs.call_args_list[0][0][0]
        assert sent["address"] == "0xabc"
        assert sent["topics"] == ["0x01"]

    def test_single_block_range(self, client, w3):
        w3.eth.get_logs.return_value = []

        client.get_logs_chunked({}, 42, 42, chunk_size=10)

        sent = w3.eth.get_logs.call_args[0][0]
        assert (sent["fromBlock"], sent["toBlock"]) == (42, 42)

    def test_empty_range(self, client, w3):
        assert client.get_logs_chunked({}, 10, 9) == []
        w3.eth.get_logs.assert_not_called()

    def test_invalid_chunk_size(self, client):
        with pytest.raises(ValueError):
            client.get_logs_chunked({}, 0, 10, chunk_size=0)
