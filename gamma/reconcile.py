# =============================================================================
# POLYGON CTF SCANNER
# Module: gamma/reconcile.py
# Purpose: Cross-check Gamma API market records against on-chain state
# =============================================================================
#
# THREE SOURCES FOR ONE CONDITION:
# - Gamma API:   conditionId, clobTokenIds
# - On chain:    ConditionPreparation(conditionId, oracle, questionId, slots)
# - Derivation:  chain.ids from (oracle, questionId, slots)
#
# The emitted event is authoritative. A report explains which of the other
# two disagree with it.
#
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chain.ids import (
    ConditionIdDiagnosis,
    binary_position_ids,
    collateral_for_oracle,
    diagnose_condition_id,
)
from chain.scanner import Scanner
from chain.utils import BytesLike, format_address, to_hex32
from shared.enums import ReconcileStatus

from .client import GammaClient, parse_clob_token_ids

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation."""
    condition_id: str
    status: ReconcileStatus = ReconcileStatus.MATCH
    api_condition_id: Optional[str] = None
    onchain_condition_id: Optional[str] = None
    derived_condition_id: Optional[str] = None
    question_id: Optional[str] = None
    oracle: Optional[str] = None
    outcome_slot_count: Optional[int] = None
    api_token_ids: List[str] = field(default_factory=list)
    derived_token_ids: List[str] = field(default_factory=list)
    diagnosis: Optional[ConditionIdDiagnosis] = None
    notes: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ReconcileStatus.MATCH

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "conditionId": self.condition_id,
            "status": self.status.value,
            "apiConditionId": self.api_condition_id,
            "onchainConditionId": self.onchain_condition_id,
            "derivedConditionId": self.derived_condition_id,
            "questionId": self.question_id,
            "oracle": self.oracle,
            "outcomeSlotCount": self.outcome_slot_count,
            "apiTokenIds": list(self.api_token_ids),
            "derivedTokenIds": list(self.derived_token_ids),
            "diagnosis": self.diagnosis.to_dict() if self.diagnosis else None,
            "notes": list(self.notes),
        }


class MarketReconciler:
    """
    Compares what the Gamma API says about a market with what the chain says.

    Usage:
        reconciler = MarketReconciler(scanner, GammaClient())
        report = reconciler.reconcile_condition("0x...")
    """

    def __init__(self, scanner: Scanner, gamma: GammaClient):
        self.scanner = scanner
        self.gamma = gamma

    def reconcile_condition(
        self,
        condition_id: BytesLike,
        from_block: Optional[int] = None,
    ) -> ReconcileReport:
        """
        Reconcile one condition across API, chain and local derivation.

        Raises:
            GammaApiError: If the API cannot be reached
            RpcError: If the chain cannot be reached
        """
        condition_hex = to_hex32(condition_id)
        report = ReconcileReport(condition_id=condition_hex)

        api_market = self.gamma.fetch_market_by_condition_id(condition_hex)
        neg_risk = False
        if api_market is not None:
            report.api_condition_id = str(api_market.get("conditionId", "")).lower() or None
            report.api_token_ids = [str(t) for t in parse_clob_token_ids(api_market)]
            neg_risk = bool(api_market.get("negRisk"))

        market = self.scanner.fetch_market_info_by_condition_id(condition_hex, from_block)
        if market is None:
            report.status = ReconcileStatus.NOT_FOUND_ON_CHAIN
            report.notes.append("No ConditionPreparation event found")
            logger.info(f"{condition_hex}: {report.status.value}")
            return report

        report.onchain_condition_id = market.condition_id
        report.question_id = market.question_id
        report.oracle = market.oracle
        report.outcome_slot_count = market.outcome_slot_count
        report.derived_token_ids = [
            str(int(market.yes_token_id, 16)),
            str(int(market.no_token_id, 16)),
        ]

        collateral = market.collateral_token
        if neg_risk:
            collateral = self.scanner.neg_risk_collateral_address
        if collateral != market.collateral_token:
            yes, no = binary_position_ids(market.condition_id, collateral)
            report.derived_token_ids = [str(yes), str(no)]
        if collateral == self.scanner.neg_risk_collateral_address:
            report.notes.append(
                f"Neg-risk market: token IDs derived over wrapped collateral {collateral}"
            )

        report.diagnosis = diagnose_condition_id(
            market.oracle,
            market.question_id,
            market.outcome_slot_count,
            market.condition_id,
        )
        report.derived_condition_id = report.diagnosis.candidates.get("packed")

        # The Gamma record is looked up by condition ID, so its conditionId
        # always equals the emitted one here.
        if api_market is None:
            report.status = ReconcileStatus.NOT_FOUND_IN_API
            report.notes.append("Gamma API has no market for this condition")
        elif report.derived_condition_id != market.condition_id:
            report.status = ReconcileStatus.CONDITION_MISMATCH
            report.notes.append("Local derivation does not reproduce the emitted condition ID")
        elif not report.api_token_ids:
            report.notes.append("Gamma market has no clobTokenIds, tokens not compared")
        elif set(report.api_token_ids) != set(report.derived_token_ids):
            report.status = ReconcileStatus.TOKEN_MISMATCH
            report.notes.append("Derived token IDs differ from Gamma clobTokenIds")

        logger.info(f"{condition_hex}: {report.status.value}")
        return report

    @staticmethod
    def reconcile_question(
        oracle: str,
        question_id: BytesLike,
        outcome_slot_count: int,
        expected: BytesLike,
        collateral_token: Optional[str] = None,
    ) -> ReconcileReport:
        """
        Offline check of a (oracle, questionId, slots) triple against an
        expected condition ID, typically one copied from the API.
        """
        diagnosis = diagnose_condition_id(oracle, question_id, outcome_slot_count, expected)
        derived = diagnosis.candidates["packed"]

        report = ReconcileReport(
            condition_id=diagnosis.expected,
            api_condition_id=diagnosis.expected,
            derived_condition_id=derived,
            question_id=to_hex32(question_id),
            oracle=format_address(oracle),
            outcome_slot_count=outcome_slot_count,
            diagnosis=diagnosis,
        )

        if collateral_token is None:
            collateral_token = collateral_for_oracle(oracle)
        yes, no = binary_position_ids(derived, collateral_token)
        report.derived_token_ids = [str(yes), str(no)]

        if "packed" not in diagnosis.matches:
            report.status = ReconcileStatus.CONDITION_MISMATCH
            if diagnosis.oracle_differs:
                report.notes.append(
                    f"Expected value was prepared by oracle {diagnosis.matched_oracle}, "
                    f"not {diagnosis.oracle}"
                )
            if diagnosis.matches:
                report.notes.append(f"Expected value matches encoding(s): {diagnosis.matches}")
            else:
                report.notes.append("No known encoding reproduces the expected condition ID")

        return report
