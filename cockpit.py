#!/usr/bin/env python3
# =============================================================================
# POLYGON CTF SCANNER - COCKPIT
# =============================================================================
#
# INTERACTIVE ENTRY POINT
#
# Read-only. Scans blocks or single transactions for OrderFilled events and
# lets the user drill into individual trades.
#
# Usage:
#   python cockpit.py                    # Interactive menu
#   python cockpit.py --no-color         # Without ANSI colors
#   python cockpit.py --rpc-url URL      # Custom JSON-RPC endpoint
#
# Script mode: python -m chain --help
#
# =============================================================================

import sys
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

BASE_DIR = Path(__file__).parent
sys.path.insert(0, str(BASE_DIR))

from chain import render
from chain.exceptions import ScannerError
from chain.models import TradeOutput
from chain.render import C
from chain.scanner import Scanner
from shared.config import ConfigError, ScannerConfig, load_config
from shared.logging_config import setup_logging

logger = logging.getLogger("cockpit")

DEFAULT_SCAN_FROM = 66_000_000
DEFAULT_SCAN_RANGE = 5

BANNER = r"""
  ____       _            ____
 |  _ \ ___ | |_   _     / ___|  ___ __ _ _ __
 | |_) / _ \| | | | |____\___ \ / __/ _` | '_ \
 |  __/ (_) | | |_| |_____|__) | (_| (_| | | | |
 |_|   \___/|_|\__, |    |____/ \___\__,_|_| |_|
               |___/
"""


# =============================================================================
# OUTPUT HELPERS
# =============================================================================

def print_header():
    """Print header."""
    print(f"{C.MAGENTA}{C.BOLD}{BANNER}{C.RESET}")
    print(f"{C.BOLD}{C.CYAN}Polygon OrderFilled Event Scanner{C.RESET}")
    print(f"{C.CYAN}{'=' * 40}{C.RESET}")
    print(f"{C.DIM}   {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}{C.RESET}")
    print()


def prompt(text: str, default: Optional[str] = None, read: Callable[[str], str] = input) -> str:
    """Ask for a value, returning default on empty input."""
    suffix = f" (default: {default})" if default is not None else ""
    answer = read(f"{C.BOLD}{text}{suffix}: {C.RESET}").strip()
    if not answer and default is not None:
        return default
    return answer


def parse_int(text: str, fallback: int) -> int:
    try:
        return int(text)
    except ValueError:
        return fallback


# =============================================================================
# TRADE BROWSER
# =============================================================================

def interact_with_trades(trades: List[TradeOutput], read: Callable[[str], str] = input) -> None:
    """List trades, show details for the selected one, until 'b' or EOF."""
    labels = render.trade_choice_labels(trades)

    while True:
        print(f"\n{C.BOLD}Trades:{C.RESET}")
        for label in labels:
            print(f"  {label}")
        print(f"  {C.CYAN}b{C.RESET}    | Back to main menu")

        try:
            choice = read(f"{C.BOLD}Select a trade [1-{len(trades)}]: {C.RESET}").strip().lower()
        except (KeyboardInterrupt, EOFError):
            return

        if choice in ("b", "q", ""):
            return

        index = parse_int(choice, 0)
        if not 1 <= index <= len(trades):
            print(f"{C.RED}Invalid selection.{C.RESET}")
            continue

        print()
        print(render.format_trade_detail(trades[index - 1]))
        print()


# =============================================================================
# MENU ACTIONS
# =============================================================================

def scan_recent_blocks(scanner: Scanner, read: Callable[[str], str] = input) -> None:
    try:
        from_block = parse_int(prompt("Start Block", str(DEFAULT_SCAN_FROM), read), DEFAULT_SCAN_FROM)
        block_range = parse_int(prompt("Range", str(DEFAULT_SCAN_RANGE), read), DEFAULT_SCAN_RANGE)
    except (KeyboardInterrupt, EOFError):
        print()
        return
    to_block = from_block + block_range

    print(f"{C.YELLOW}Scanning blocks {from_block} to {to_block}...{C.RESET}")
    try:
        trades = scanner.fetch_events(from_block, to_block)
    except ScannerError as e:
        print(f"{C.RED}Error:{C.RESET} {e}")
        return

    if not trades:
        print(f"{C.YELLOW}No OrderFilled events found in this range.{C.RESET}")
        return
    interact_with_trades(trades, read)


def search_transaction(scanner: Scanner, read: Callable[[str], str] = input) -> None:
    try:
        tx_hash = prompt("Enter Transaction Hash", read=read)
    except (KeyboardInterrupt, EOFError):
        print()
        return

    print(f"{C.YELLOW}Searching transaction...{C.RESET}")
    try:
        trades = scanner.fetch_tx_events(tx_hash)
    except ValueError:
        print(f"{C.RED}Invalid Transaction Hash format.{C.RESET}")
        return
    except ScannerError as e:
        print(f"{C.RED}Error fetching/parsing TX:{C.RESET} {e}")
        return

    if not trades:
        print(f"{C.YELLOW}No OrderFilled events found in this transaction.{C.RESET}")
        return
    interact_with_trades(trades, read)


def interactive_mode(scanner: Scanner, read: Callable[[str], str] = input) -> int:
    """Run interactive menu."""
    menu = f"""
{C.BOLD}Menu:{C.RESET}
  {C.CYAN}1{C.RESET}) Scan Recent Blocks
  {C.CYAN}2{C.RESET}) Search by Transaction Hash
  {C.CYAN}3{C.RESET}) Exit
"""
    print_header()

    while True:
        print(menu)
        try:
            choice = read(f"{C.BOLD}Select [1-3]: {C.RESET}").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{C.DIM}Goodbye!{C.RESET}\n")
            return 0

        if choice == '1':
            scan_recent_blocks(scanner, read)
        elif choice == '2':
            search_transaction(scanner, read)
        elif choice == '3':
            print(f"\n{C.GREEN}Goodbye!{C.RESET}\n")
            return 0


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Polygon CTF Scanner - Interactive Cockpit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cockpit.py                    Interactive menu
  python cockpit.py --no-color         Disable colors
  python -m chain --help               Script mode
"""
    )
    parser.add_argument('--rpc-url', type=str, default=None,
                        help='JSON-RPC endpoint (overrides config)')
    parser.add_argument('--config', type=Path, default=None,
                        help='Path to scanner.yaml')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colors')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    if args.no_color:
        C.disable()

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config: ScannerConfig = load_config(args.config)
    except ConfigError as e:
        print(f"{C.RED}Config error: {e}{C.RESET}")
        return 1

    if args.rpc_url:
        config.rpc_url = args.rpc_url

    return interactive_mode(Scanner.from_config(config))


if __name__ == "__main__":
    sys.exit(main())
