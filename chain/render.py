# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/render.py
# Purpose: Terminal rendering of trades, markets and reconcile reports
# =============================================================================
#
# All format_* functions return strings. Callers decide where to print.
#
# =============================================================================

import json
import sys
from typing import Any, Iterable, List, Sequence

from shared.enums import ReconcileStatus, TradeSide

from .models import MarketInfo, TradeOutput
from .utils import format_token_amount, to_human, truncate_str


class C:
    """Terminal colors."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    CYAN = "\033[96m"
    MAGENTA = "\033[95m"

    @classmethod
    def disable(cls):
        for attr in dir(cls):
            if attr.isupper() and not attr.startswith('_'):
                setattr(cls, attr, "")


# Windows compatibility
if sys.platform == "win32":
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
    except (AttributeError, OSError):
        C.disable()


def side_label(side: TradeSide) -> str:
    if side == TradeSide.BUY:
        return f"{C.GREEN}{C.BOLD}BUY{C.RESET}"
    if side == TradeSide.SELL:
        return f"{C.RED}{C.BOLD}SELL{C.RESET}"
    return f"{C.YELLOW}UNKNOWN{C.RESET}"


def _clip(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width]


def to_json(items: Any) -> str:
    """Pretty JSON of a model, a list of models or plain data."""
    if isinstance(items, (list, tuple)):
        payload = [i.to_dict() if hasattr(i, "to_dict") else i for i in items]
    elif hasattr(items, "to_dict"):
        payload = items.to_dict()
    else:
        payload = items
    return json.dumps(payload, indent=2, ensure_ascii=False)


# =============================================================================
# TRADES
# =============================================================================


def format_trades_table(trades: Sequence[TradeOutput]) -> str:
    """Compact one-line-per-trade table."""
    header = (
        f"{'Side':<6} {'Price':<10} {'Maker Amt':<16} {'Taker Amt':<16} "
        f"{'Token ID':<15} {'Tx Hash':<15}"
    )
    lines = [f"{C.BOLD}{header}{C.RESET}", "-" * len(header)]

    for trade in trades:
        # Pad before colouring so escape codes do not break alignment
        side = trade.side.value.ljust(6)
        if trade.side == TradeSide.BUY:
            side = f"{C.GREEN}{side}{C.RESET}"
        elif trade.side == TradeSide.SELL:
            side = f"{C.RED}{side}{C.RESET}"

        lines.append(
            f"{side} "
            f"{C.CYAN}{_clip(trade.price, 10):<10}{C.RESET} "
            f"{trade.maker_amount_filled:<16} "
            f"{trade.taker_amount_filled:<16} "
            f"{C.MAGENTA}{truncate_str(trade.token_id, 6, 4):<15}{C.RESET} "
            f"{C.DIM}{truncate_str(trade.tx_hash, 6, 4):<15}{C.RESET}"
        )

    lines.append(f"{C.DIM}{len(trades)} trade(s){C.RESET}")
    return "\n".join(lines)


def trade_choice_labels(trades: Sequence[TradeOutput]) -> List[str]:
    """Short labels for a selection menu."""
    labels = []
    for i, trade in enumerate(trades, start=1):
        if trade.side == TradeSide.BUY:
            side = "BUY "
        elif trade.side == TradeSide.SELL:
            side = "SELL"
        else:
            side = "UNK "
        short_tx = truncate_str(trade.tx_hash, 4, 4)
        labels.append(f"{i:<4} | {side} | P: {_clip(trade.price, 8)} | Tx: {short_tx}")
    return labels


def price_unit(trade: TradeOutput) -> str:
    """Quote asset of a trade price. Token/token fills are priced maker per taker."""
    if "0" in (trade.maker_asset_id, trade.taker_asset_id):
        return "USDC"
    return "maker/taker"


def format_trade_detail(trade: TradeOutput) -> str:
    """Field/value view of one trade, amounts as 'raw (human)'."""
    maker_human = float(to_human(int(trade.maker_amount_filled), trade.maker_decimals))
    taker_human = float(to_human(int(trade.taker_amount_filled), trade.taker_decimals))

    rows = [
        ("txHash", trade.tx_hash),
        ("logIndex", str(trade.log_index)),
        ("exchange", trade.exchange),
        ("maker", trade.maker),
        ("taker", trade.taker),
        ("makerAssetId", trade.maker_asset_id),
        ("takerAssetId", trade.taker_asset_id),
        ("makerAmountFilled",
         f"{trade.maker_amount_filled} ({format_token_amount(maker_human)})"),
        ("takerAmountFilled",
         f"{trade.taker_amount_filled} ({format_token_amount(taker_human)})"),
        ("price", f"{C.CYAN}{trade.price} {price_unit(trade)}{C.RESET}"),
        ("tokenId", f"{C.MAGENTA}{trade.token_id}{C.RESET}"),
        ("side", side_label(trade.side)),
    ]
    return _format_rows(rows)


# =============================================================================
# MARKETS
# =============================================================================


def format_market(market: MarketInfo) -> str:
    verified = (
        f"{C.GREEN}yes{C.RESET}" if market.condition_id_verified
        else f"{C.RED}NO - derived ID differs{C.RESET}"
    )
    rows = [
        ("conditionId", market.condition_id),
        ("questionId", market.question_id),
        ("oracle", market.oracle),
        ("outcomeSlotCount", str(market.outcome_slot_count)),
        ("collateralToken", market.collateral_token),
        ("yesTokenId", f"{C.MAGENTA}{market.yes_token_id}{C.RESET}"),
        ("noTokenId", f"{C.MAGENTA}{market.no_token_id}{C.RESET}"),
        ("derivationVerified", verified),
    ]
    if market.block_number is not None:
        rows.append(("blockNumber", str(market.block_number)))
    if market.tx_hash:
        rows.append(("txHash", market.tx_hash))
    return _format_rows(rows)


def format_markets_table(markets: Sequence[MarketInfo]) -> str:
    header = f"{'Block':<10} {'Condition ID':<15} {'Oracle':<15} {'Slots':<6} {'OK':<3}"
    lines = [f"{C.BOLD}{header}{C.RESET}", "-" * len(header)]

    for market in markets:
        block = str(market.block_number) if market.block_number is not None else "-"
        ok = "yes" if market.condition_id_verified else "NO"
        lines.append(
            f"{block:<10} "
            f"{truncate_str(market.condition_id, 6, 4):<15} "
            f"{truncate_str(market.oracle, 6, 4):<15} "
            f"{market.outcome_slot_count:<6} "
            f"{ok:<3}"
        )

    lines.append(f"{C.DIM}{len(markets)} market(s){C.RESET}")
    return "\n".join(lines)


# =============================================================================
# DIAGNOSIS / RECONCILE
# =============================================================================


def format_diagnosis(diagnosis) -> str:
    rows = [("expected", diagnosis.expected)]
    for name, candidate in diagnosis.candidates.items():
        mark = f"{C.GREEN}match{C.RESET}" if name in diagnosis.matches else f"{C.RED}no match{C.RESET}"
        rows.append((name, f"{candidate}  {mark}"))
    if diagnosis.oracle_differs:
        rows.append(("matchedOracle", f"{C.YELLOW}{diagnosis.matched_oracle}{C.RESET}"))
    return _format_rows(rows)


def format_reconcile_report(report) -> str:
    color = C.GREEN if report.status == ReconcileStatus.MATCH else C.YELLOW
    rows = [
        ("status", f"{color}{C.BOLD}{report.status.value}{C.RESET}"),
        ("conditionId", report.condition_id),
        ("apiConditionId", report.api_condition_id or "-"),
        ("onchainConditionId", report.onchain_condition_id or "-"),
        ("derivedConditionId", report.derived_condition_id or "-"),
        ("questionId", report.question_id or "-"),
        ("oracle", report.oracle or "-"),
        ("apiTokenIds", ", ".join(report.api_token_ids) or "-"),
        ("derivedTokenIds", ", ".join(report.derived_token_ids) or "-"),
    ]
    text = _format_rows(rows)
    if report.notes:
        text += "\n" + "\n".join(f"  {C.YELLOW}!{C.RESET} {note}" for note in report.notes)
    return text


def _format_rows(rows: Iterable) -> str:
    rows = list(rows)
    width = max(len(name) for name, _ in rows)
    return "\n".join(f"  {C.BOLD}{name:<{width}}{C.RESET}  {value}" for name, value in rows)
