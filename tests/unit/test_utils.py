"""
UNIT TESTS - VALUE NORMALISATION AND FORMATTING
===============================================
Tests for chain/utils.py and chain/models.py
"""

import pytest
from web3 import Web3

from chain.models import MarketInfo, OrderFilledLog, TradeOutput
from chain.utils import (
    calculate_price,
    format_address,
    format_token_amount,
    to_bytes32,
    to_hex32,
    topic_to_address,
    truncate_str,
    uint_to_address,
    word_to_int,
)
from shared.enums import TradeSide
from tests.mock_chain import ORACLE, address_topic


# =============================================================================
# BYTES32
# =============================================================================

def test_to_bytes32_accepts_hex_with_and_without_prefix():
    value = "ab" * 32
    assert to_bytes32("0x" + value) == to_bytes32(value) == bytes.fromhex(value)


def test_to_bytes32_accepts_uppercase_prefix():
    assert to_bytes32("0X" + "01" * 32) == b"\x01" * 32


def test_to_bytes32_accepts_int():
    assert to_bytes32(1) == b"\x00" * 31 + b"\x01"


@pytest.mark.parametrize("bad", ["0x1234", "zz" * 32, b"\x00" * 33, -1, 2**256, True, 1.5])
def test_to_bytes32_rejects_bad_values(bad):
    with pytest.raises(ValueError):
        to_bytes32(bad)


def test_to_hex32_is_lowercase_and_prefixed():
    assert to_hex32("0x" + "AB" * 32) == "0x" + "ab" * 32


# =============================================================================
# ADDRESSES
# =============================================================================

def test_format_address_checksums():
    assert format_address(ORACLE.lower()) == Web3.to_checksum_address(ORACLE)


def test_format_address_from_bytes():
    raw = bytes.fromhex(ORACLE[2:])
    assert format_address(raw) == Web3.to_checksum_address(ORACLE)


def test_topic_to_address():
    assert topic_to_address(address_topic(ORACLE)) == Web3.to_checksum_address(ORACLE)


def test_uint_to_address_uses_low_20_bytes():
    value = (0xFF << 200) | int(ORACLE, 16)
    assert uint_to_address(value) == Web3.to_checksum_address(ORACLE)


def test_word_to_int():
    data = (5).to_bytes(32, "big") + (7).to_bytes(32, "big")
    assert word_to_int(data, 0) == 5
    assert word_to_int(data, 1) == 7
    with pytest.raises(ValueError):
        word_to_int(data, 2)


# =============================================================================
# PRICES AND AMOUNTS
# =============================================================================

def test_calculate_price_same_decimals():
    assert calculate_price(520_000, 6, 1_000_000, 6) == "0.520000"


def test_calculate_price_mixed_decimals():
    # 1.5 USDC for 3 tokens with 18 decimals
    assert calculate_price(1_500_000, 6, 3 * 10**18, 18) == "0.500000"


def test_calculate_price_zero_taker():
    assert calculate_price(1_000_000, 6, 0, 6) == "0.0"


def test_calculate_price_large_values_do_not_lose_precision():
    huge = 2**200
    assert calculate_price(huge, 0, huge, 0) == "1.000000"


def test_format_token_amount():
    assert format_token_amount(0) == "0.0"
    assert format_token_amount(0.00001) == "1.00e-05"
    assert format_token_amount(1.23456) == "1.2346"


def test_truncate_str():
    assert truncate_str("0x1234", 4, 4) == "0x1234"
    assert truncate_str("0x1234567890", 4, 4) == "0x12...7890"
    assert truncate_str("abcdef", 3, 0) == "abc..."


# =============================================================================
# MODELS
# =============================================================================

def _fill(maker_asset_id, taker_asset_id):
    return OrderFilledLog(
        order_hash="0x" + "00" * 32,
        maker="0x1111111111111111111111111111111111111111",
        taker="0x2222222222222222222222222222222222222222",
        maker_asset_id=maker_asset_id,
        taker_asset_id=taker_asset_id,
        maker_amount_filled=1,
        taker_amount_filled=2,
        fee=0,
        tx_hash="0x" + "ab" * 32,
        log_index=3,
        block_number=4,
        exchange="0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
    )


def test_order_filled_buy_token_is_taker_asset():
    fill = _fill(0, 99)
    assert fill.is_buy
    assert fill.token_id == 99


def test_order_filled_sell_token_is_maker_asset():
    fill = _fill(77, 0)
    assert not fill.is_buy
    assert fill.token_id == 77


def test_trade_output_to_dict_uses_camel_case():
    trade = TradeOutput(
        tx_hash="0xabc", log_index=1, exchange="0xex", maker="0xm", taker="0xt",
        maker_asset_id="0", taker_asset_id="0x63",
        maker_amount_filled="520000", taker_amount_filled="1000000",
        maker_decimals=6, taker_decimals=6, price="0.520000",
        token_id="0x63", side=TradeSide.BUY,
    )
    data = trade.to_dict()

    assert list(data) == [
        "txHash", "logIndex", "exchange", "maker", "taker",
        "makerAssetId", "takerAssetId", "makerAmountFilled", "takerAmountFilled",
        "makerDecimals", "takerDecimals", "price", "tokenId", "side",
    ]
    assert data["side"] == "BUY"


def test_market_info_to_dict():
    market = MarketInfo(
        condition_id="0xc", question_id="0xq", oracle="0xo", outcome_slot_count=2,
        collateral_token="0xusdc", yes_token_id="0x1", no_token_id="0x2",
    )
    data = market.to_dict()

    assert data["conditionId"] == "0xc"
    assert data["outcomeSlotCount"] == 2
    assert data["conditionIdVerified"] is True
    assert data["blockNumber"] is None
