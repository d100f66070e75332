# =============================================================================
# POLYGON CTF SCANNER - SHARED MODULE
# =============================================================================
#
# CONTENTS:
# - Enums (shared type definitions)
# - Logging setup
# - Configuration loading (shared.config, imported directly)
#
# =============================================================================

from .enums import TradeSide, ReconcileStatus
from .logging_config import setup_logging

__all__ = [
    "TradeSide",
    "ReconcileStatus",
    "setup_logging",
]
