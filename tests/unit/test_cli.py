"""
UNIT TESTS - COMMAND LINE
=========================
Argument parsing, output modes and exit codes of `python -m chain`.
The scanner and Gamma client are replaced via chain.cli.build_* patches.
"""

import json
from unittest.mock import Mock, patch

import pytest
from web3 import Web3

from chain.cli import build_parser, main
from chain.consts import (
    NEG_RISK_ADAPTER_ADDRESS,
    NEG_RISK_WRAPPED_COLLATERAL_ADDRESS,
    USDC_ADDRESS,
)
from chain.exceptions import RpcError, ScanError
from chain.ids import binary_position_ids, get_condition_id, get_condition_id_abi_encoded
from chain.models import MarketInfo, TradeOutput
from chain.scanner import Scanner
from gamma.client import GammaApiError, GammaClient
from shared.enums import TradeSide
from tests.mock_chain import ORACLE, QUESTION_ID, TX_HASH, condition_preparation_log, mock_rpc

CONDITION_ID = get_condition_id(ORACLE, QUESTION_ID, 2)
CONDITION_HEX = "0x" + CONDITION_ID.hex()
NEG_RISK_CONDITION_HEX = "0x" + get_condition_id(NEG_RISK_ADAPTER_ADDRESS, QUESTION_ID, 2).hex()


@pytest.fixture
def config_args(tmp_path):
    """Point the CLI at a config file that does not exist (defaults only)."""
    return ["--config", str(tmp_path / "scanner.yaml")]


@pytest.fixture
def scanner():
    mock = Mock(spec=Scanner)
    with patch("chain.cli.build_scanner", return_value=mock) as build:
        mock.build = build
        yield mock


def sample_trade():
    return TradeOutput(
        tx_hash=TX_HASH, log_index=7, exchange="0xEx", maker="0xMaker", taker="0xTaker",
        maker_asset_id="0", taker_asset_id="0x63",
        maker_amount_filled="520000", taker_amount_filled="1000000",
        maker_decimals=6, taker_decimals=6, price="0.520000",
        token_id="0x63", side=TradeSide.BUY,
    )


def sample_market():
    return MarketInfo(
        condition_id=CONDITION_HEX, question_id=QUESTION_ID, oracle=ORACLE,
        outcome_slot_count=2, collateral_token=USDC_ADDRESS,
        yes_token_id="0x1", no_token_id="0x2", block_number=81_900_000,
    )


# =============================================================================
# PARSER
# =============================================================================


class TestParser:

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_trades_flags(self):
        args = build_parser().parse_args(["trades", "-f", "100", "-r", "5", "-j"])
        assert (args.from_block, args.range, args.json) == (100, 5, True)

    def test_trades_defaults_come_from_config(self):
        args = build_parser().parse_args(["trades"])
        assert args.from_block is None
        assert args.range is None


# =============================================================================
# COMMANDS
# =============================================================================


class TestTrades:

    def test_json_output(self, scanner, config_args, capsys):
        scanner.fetch_events.return_value = [sample_trade()]

        code = main(config_args + ["trades", "--from", "100", "--range", "5", "--json"])

        assert code == 0
        scanner.fetch_events.assert_called_once_with(100, 105)
        data = json.loads(capsys.readouterr().out)
        assert data[0]["txHash"] == TX_HASH
        assert data[0]["side"] == "BUY"

    def test_config_defaults(self, scanner, config_args):
        scanner.fetch_events.return_value = []

        assert main(config_args + ["trades"]) == 0
        scanner.fetch_events.assert_called_once_with(66_000_000, 66_000_010)

    def test_table_output(self, scanner, config_args, capsys):
        scanner.fetch_events.return_value = [sample_trade()]

        main(config_args + ["--no-color", "trades"])

        out = capsys.readouterr().out
        assert "BUY" in out
        assert "1 trade(s)" in out

    def test_empty_range(self, scanner, config_args, capsys):
        scanner.fetch_events.return_value = []

        assert main(config_args + ["trades"]) == 0
        assert "No OrderFilled events" in capsys.readouterr().out

    def test_rpc_url_flag_overrides_config(self, scanner, config_args):
        scanner.fetch_events.return_value = []

        main(["--rpc-url", "http://node:8545"] + config_args + ["trades"])

        config = scanner.build.call_args[0][0]
        assert config.rpc_url == "http://node:8545"


class TestTransactionAndMarket:

    def test_tx_detail(self, scanner, config_args, capsys):
        scanner.fetch_tx_events.return_value = [sample_trade()]

        assert main(config_args + ["tx", TX_HASH]) == 0

        out = capsys.readouterr().out
        assert "520000 (0.5200)" in out
        scanner.fetch_tx_events.assert_called_once_with(TX_HASH)

    def test_market_found(self, scanner, config_args, capsys):
        scanner.fetch_market_info.return_value = sample_market()

        assert main(config_args + ["market", TX_HASH, "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["conditionId"] == CONDITION_HEX

    def test_market_missing(self, scanner, config_args):
        scanner.fetch_market_info.return_value = None
        assert main(config_args + ["market", TX_HASH]) == 1

    def test_condition_lookup(self, scanner, config_args):
        scanner.fetch_market_info_by_condition_id.return_value = sample_market()

        assert main(config_args + ["condition", CONDITION_HEX, "--from-block", "55000000"]) == 0
        scanner.fetch_market_info_by_condition_id.assert_called_once_with(
            CONDITION_HEX, from_block=55_000_000
        )

    def test_markets_table(self, scanner, config_args, capsys):
        scanner.fetch_market_events.return_value = [sample_market()]

        assert main(config_args + ["markets", "-f", "10", "-r", "20"]) == 0
        scanner.fetch_market_events.assert_called_once_with(10, 30)
        assert "1 market(s)" in capsys.readouterr().out

    def test_recent(self, scanner, config_args):
        scanner.find_recent_market.return_value = None

        code = main(config_args + ["recent", "--end-block", "900", "--chunk-size", "10",
                                   "--max-iterations", "3", "--delay", "0"])

        assert code == 1
        scanner.find_recent_market.assert_called_once_with(
            end_block=900, chunk_size=10, max_iterations=3, delay_seconds=0.0
        )


class TestDerive:

    def test_offline_json(self, config_args, capsys):
        code = main(config_args + [
            "derive", "--oracle", ORACLE, "--question-id", QUESTION_ID, "--json",
        ])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        yes, no = binary_position_ids(CONDITION_ID, USDC_ADDRESS)
        assert data["conditionId"] == CONDITION_HEX
        assert data["yesTokenId"] == str(yes)
        assert data["noTokenId"] == str(no)
        assert "diagnosis" not in data

    def test_expected_match(self, config_args):
        code = main(config_args + [
            "derive", "--oracle", ORACLE, "--question-id", QUESTION_ID,
            "--expected", CONDITION_HEX,
        ])
        assert code == 0

    def test_expected_mismatch(self, config_args, capsys):
        padded = "0x" + get_condition_id_abi_encoded(ORACLE, QUESTION_ID, 2).hex()

        code = main(config_args + [
            "--no-color", "derive", "--oracle", ORACLE, "--question-id", QUESTION_ID,
            "--expected", padded,
        ])

        assert code == 1
        assert "abi_encoded" in capsys.readouterr().out

    def test_condition_from_other_oracle_exits_zero(self, config_args, capsys):
        """The UMA adapter plus this question ID reproduce nothing, but the NegRiskAdapter does."""
        code = main(config_args + [
            "derive", "--oracle", ORACLE, "--question-id", QUESTION_ID,
            "--expected", NEG_RISK_CONDITION_HEX, "--json",
        ])

        assert code == 0
        diagnosis = json.loads(capsys.readouterr().out)["diagnosis"]
        assert diagnosis["matches"] == ["packed:neg_risk_adapter"]
        assert diagnosis["matchedOracle"] == Web3.to_checksum_address(NEG_RISK_ADAPTER_ADDRESS)

    def test_neg_risk_oracle_uses_wrapped_collateral(self, config_args, capsys):
        code = main(config_args + [
            "derive", "--oracle", NEG_RISK_ADAPTER_ADDRESS, "--question-id", QUESTION_ID,
            "--expected", NEG_RISK_CONDITION_HEX, "--json",
        ])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        yes, no = binary_position_ids(NEG_RISK_CONDITION_HEX, NEG_RISK_WRAPPED_COLLATERAL_ADDRESS)
        assert data["conditionId"] == NEG_RISK_CONDITION_HEX
        assert data["collateralToken"] == Web3.to_checksum_address(
            NEG_RISK_WRAPPED_COLLATERAL_ADDRESS
        )
        assert data["yesTokenId"] == str(yes)
        assert data["noTokenId"] == str(no)

    def test_invalid_question_id(self, config_args):
        code = main(config_args + ["derive", "--oracle", ORACLE, "--question-id", "0x12"])
        assert code == 1


class TestReconcile:

    def test_reconcile_match(self, config_args, capsys):
        rpc = mock_rpc()
        rpc.get_logs.return_value = [condition_preparation_log(CONDITION_ID)]
        yes, no = binary_position_ids(CONDITION_ID, USDC_ADDRESS)
        gamma = Mock(spec=GammaClient)
        gamma.fetch_market_by_condition_id.return_value = {
            "conditionId": CONDITION_HEX,
            "clobTokenIds": json.dumps([str(yes), str(no)]),
        }

        with patch("chain.cli.build_scanner", return_value=Scanner(rpc)), \
                patch("chain.cli.build_gamma", return_value=gamma):
            code = main(config_args + ["reconcile", CONDITION_HEX, "--json"])

        assert code == 0
        assert json.loads(capsys.readouterr().out)["status"] == "MATCH"

    def test_api_failure(self, scanner, config_args):
        gamma = Mock(spec=GammaClient)
        gamma.fetch_market_by_condition_id.side_effect = GammaApiError("down", 503)

        with patch("chain.cli.build_gamma", return_value=gamma):
            assert main(config_args + ["reconcile", CONDITION_HEX]) == 1


# =============================================================================
# EXIT CODES
# =============================================================================


class TestExitCodes:

    def test_scan_error(self, scanner, config_args):
        scanner.fetch_tx_events.side_effect = ScanError("Transaction receipt not found", TX_HASH)
        assert main(config_args + ["tx", TX_HASH]) == 1

    def test_rpc_error(self, scanner, config_args):
        scanner.fetch_events.side_effect = RpcError("eth_getLogs", ConnectionError("down"), 3)
        assert main(config_args + ["trades"]) == 1

    def test_invalid_input(self, scanner, config_args):
        scanner.fetch_tx_events.side_effect = ValueError("Expected 32 bytes, got 2")
        assert main(config_args + ["tx", "0x1234"]) == 1

    def test_keyboard_interrupt(self, scanner, config_args):
        scanner.fetch_events.side_effect = KeyboardInterrupt
        assert main(config_args + ["trades"]) == 130

    def test_bad_config(self, tmp_path):
        path = tmp_path / "scanner.yaml"
        path.write_text("scanner: [broken\n", encoding="utf-8")

        assert main(["--config", str(path), "trades"]) == 1
