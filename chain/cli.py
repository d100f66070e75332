# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/cli.py
# Purpose: Script-mode command line interface
# =============================================================================
#
# USAGE:
#   python -m chain trades --from 66000000 --range 10 [--json]
#   python -m chain tx 0x<tx hash> [--json]
#   python -m chain market 0x<tx hash>
#   python -m chain condition 0x<condition id> [--from-block N]
#   python -m chain markets --from N --range R
#   python -m chain recent [--end-block N] [--chunk-size 50] [--max-iterations 100]
#   python -m chain derive --oracle 0x.. --question-id 0x.. [--slots 2] [--expected 0x..]
#   python -m chain reconcile 0x<condition id> [--from-block N]
#
# Interactive mode lives in cockpit.py.
#
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from gamma.client import GammaApiError, GammaClient
from gamma.reconcile import MarketReconciler
from shared.config import ConfigError, ScannerConfig, load_config
from shared.logging_config import setup_logging

from . import render
from .exceptions import ScannerError
from .ids import binary_position_ids, diagnose_condition_id, get_condition_id
from .render import C
from .scanner import Scanner
from .utils import format_address, to_hex32

logger = logging.getLogger(__name__)


def build_scanner(config: ScannerConfig) -> Scanner:
    return Scanner.from_config(config)


def build_gamma(config: ScannerConfig) -> GammaClient:
    return GammaClient(
        base_url=config.gamma_base_url,
        timeout=config.rpc_timeout,
        max_retries=config.max_retries,
    )


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_trades(args, config: ScannerConfig) -> int:
    """Decode OrderFilled events in a block range."""
    from_block = args.from_block if args.from_block is not None else config.default_from_block
    block_range = args.range if args.range is not None else config.default_range
    to_block = from_block + block_range

    logger.info(f"Scanning Polygon blocks {from_block} to {to_block}...")
    trades = build_scanner(config).fetch_events(from_block, to_block)

    if args.json:
        print(render.to_json(trades))
    elif not trades:
        print(f"{C.YELLOW}No OrderFilled events found in this range.{C.RESET}")
    else:
        print(render.format_trades_table(trades))
    return 0


def cmd_tx(args, config: ScannerConfig) -> int:
    """Decode OrderFilled events of a transaction."""
    trades = build_scanner(config).fetch_tx_events(args.tx_hash)

    if args.json:
        print(render.to_json(trades))
    elif not trades:
        print(f"{C.YELLOW}No OrderFilled events found in this transaction.{C.RESET}")
    else:
        for trade in trades:
            print(render.format_trade_detail(trade))
            print()
    return 0


def cmd_market(args, config: ScannerConfig) -> int:
    """Show the condition prepared in a transaction."""
    market = build_scanner(config).fetch_market_info(args.tx_hash)
    if market is None:
        print(f"{C.YELLOW}No ConditionPreparation event in this transaction.{C.RESET}")
        return 1

    print(render.to_json(market) if args.json else render.format_market(market))
    return 0


def cmd_condition(args, config: ScannerConfig) -> int:
    """Find the ConditionPreparation event for a condition ID."""
    market = build_scanner(config).fetch_market_info_by_condition_id(
        args.condition_id, from_block=args.from_block
    )
    if market is None:
        print(f"{C.YELLOW}Market not found.{C.RESET}")
        return 1

    print(render.to_json(market) if args.json else render.format_market(market))
    return 0


def cmd_markets(args, config: ScannerConfig) -> int:
    """List conditions prepared in a block range."""
    from_block = args.from_block if args.from_block is not None else config.default_from_block
    block_range = args.range if args.range is not None else config.default_range

    markets = build_scanner(config).fetch_market_events(from_block, from_block + block_range)

    if args.json:
        print(render.to_json(markets))
    else:
        print(render.format_markets_table(markets))
    return 0


def cmd_recent(args, config: ScannerConfig) -> int:
    """Walk back from head until a newly prepared condition is found."""
    market = build_scanner(config).find_recent_market(
        end_block=args.end_block,
        chunk_size=args.chunk_size,
        max_iterations=args.max_iterations,
        delay_seconds=args.delay,
    )
    if market is None:
        print(f"{C.YELLOW}No markets found.{C.RESET}")
        return 1

    print(render.to_json(market) if args.json else render.format_market(market))
    return 0


def cmd_derive(args, config: ScannerConfig) -> int:
    """Derive condition and token IDs offline."""
    oracle = format_address(args.oracle)
    if oracle == format_address(config.neg_risk_adapter_address):
        collateral = config.neg_risk_collateral_address
    else:
        collateral = config.collateral_address

    condition_id = get_condition_id(oracle, args.question_id, args.slots)
    yes, no = binary_position_ids(condition_id, collateral)

    result = {
        "oracle": oracle,
        "questionId": to_hex32(args.question_id),
        "outcomeSlotCount": args.slots,
        "conditionId": to_hex32(condition_id),
        "collateralToken": format_address(collateral),
        "yesTokenId": str(yes),
        "noTokenId": str(no),
    }

    diagnosis = None
    if args.expected:
        diagnosis = diagnose_condition_id(oracle, args.question_id, args.slots, args.expected)
        result["diagnosis"] = diagnosis.to_dict()

    if args.json:
        print(render.to_json(result))
    else:
        for key, value in result.items():
            if key != "diagnosis":
                print(f"  {C.BOLD}{key:<17}{C.RESET} {value}")
        if diagnosis is not None:
            print()
            print(render.format_diagnosis(diagnosis))

    # Only the packed encoding is what the contract computes
    if diagnosis is not None and not diagnosis.contract_match:
        return 1
    return 0


def cmd_reconcile(args, config: ScannerConfig) -> int:
    """Cross-check the Gamma API record of a condition with the chain."""
    reconciler = MarketReconciler(build_scanner(config), build_gamma(config))
    report = reconciler.reconcile_condition(args.condition_id, from_block=args.from_block)

    print(render.to_json(report) if args.json else render.format_reconcile_report(report))
    return 0 if report.ok else 1


# =============================================================================
# ARGUMENTS
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m chain",
        description="Polygon CTF Scanner - Polymarket trades and conditions from event logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m chain trades --from 66000000 --range 10
  python -m chain tx 0x1811f927f16430655d9c06e9dd391a980c9e0639815f044ab8b8be13091a9303
  python -m chain condition 0xe3b4...f7a9 --from-block 55000000
  python -m chain derive --oracle 0xd91E... --question-id 0x6a0d... --expected 0xa646...
  python -m chain reconcile 0xe3b4...f7a9 --from-block 55000000
        """,
    )

    parser.add_argument("--rpc-url", type=str, default=None,
                        help="JSON-RPC endpoint (overrides config)")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to scanner.yaml (default: config/scanner.yaml)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("--log-file", action="store_true",
                        help="Also write logs to logs/scanner_<timestamp>.log")
    parser.add_argument("--no-color", action="store_true",
                        help="Disable colors")

    sub = parser.add_subparsers(dest="command", required=True)

    def add_json(p):
        p.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    p = sub.add_parser("trades", help="Decode OrderFilled events in a block range")
    p.add_argument("--from", "-f", dest="from_block", type=int, default=None,
                   help="Start block to scan")
    p.add_argument("--range", "-r", type=int, default=None,
                   help="Number of blocks to scan")
    add_json(p)
    p.set_defaults(func=cmd_trades)

    p = sub.add_parser("tx", help="Decode OrderFilled events of a transaction")
    p.add_argument("tx_hash", help="Transaction hash")
    add_json(p)
    p.set_defaults(func=cmd_tx)

    p = sub.add_parser("market", help="Condition prepared in a transaction")
    p.add_argument("tx_hash", help="Transaction hash")
    add_json(p)
    p.set_defaults(func=cmd_market)

    p = sub.add_parser("condition", help="Find a condition by its ID")
    p.add_argument("condition_id", help="bytes32 condition ID")
    p.add_argument("--from-block", type=int, default=None,
                   help="First block to search (default: 0)")
    add_json(p)
    p.set_defaults(func=cmd_condition)

    p = sub.add_parser("markets", help="Conditions prepared in a block range")
    p.add_argument("--from", "-f", dest="from_block", type=int, default=None,
                   help="Start block to scan")
    p.add_argument("--range", "-r", type=int, default=None,
                   help="Number of blocks to scan")
    add_json(p)
    p.set_defaults(func=cmd_markets)

    p = sub.add_parser("recent", help="Find the most recently prepared condition")
    p.add_argument("--end-block", type=int, default=None, help="Start from this block (default: head)")
    p.add_argument("--chunk-size", type=int, default=50, help="Blocks per step (default: 50)")
    p.add_argument("--max-iterations", type=int, default=100, help="Max steps (default: 100)")
    p.add_argument("--delay", type=float, default=2.0, help="Seconds between steps (default: 2)")
    add_json(p)
    p.set_defaults(func=cmd_recent)

    p = sub.add_parser("derive", help="Derive condition and token IDs offline")
    p.add_argument("--oracle", required=True, help="Oracle address")
    p.add_argument("--question-id", required=True, help="bytes32 question ID")
    p.add_argument("--slots", type=int, default=2, help="Outcome slot count (default: 2)")
    p.add_argument("--expected", default=None,
                   help="Known condition ID to diagnose against")
    add_json(p)
    p.set_defaults(func=cmd_derive)

    p = sub.add_parser("reconcile", help="Compare Gamma API record with the chain")
    p.add_argument("condition_id", help="bytes32 condition ID")
    p.add_argument("--from-block", type=int, default=None,
                   help="First block to search (default: 0)")
    add_json(p)
    p.set_defaults(func=cmd_reconcile)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        file_output=args.log_file,
    )

    if args.no_color or getattr(args, "json", False) or not sys.stdout.isatty():
        C.disable()

    try:
        config = load_config(args.config)
        if args.rpc_url:
            config.rpc_url = args.rpc_url

        return args.func(args, config)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        return 1

    except (ScannerError, GammaApiError, ConfigError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
