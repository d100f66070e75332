# =============================================================================
# POLYGON CTF SCANNER
# Module: gamma/__init__.py
# Purpose: Gamma API access and API-vs-chain reconciliation
# =============================================================================

from .client import GammaClient, GammaApiError, parse_clob_token_ids
from .reconcile import MarketReconciler, ReconcileReport

__all__ = [
    "GammaClient",
    "GammaApiError",
    "parse_clob_token_ids",
    "MarketReconciler",
    "ReconcileReport",
]
