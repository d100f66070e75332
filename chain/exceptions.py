# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/exceptions.py
# Purpose: Error hierarchy for the on-chain scanner
# =============================================================================
#
# EXCEPTION HIERARCHY:
#
# ScannerError (base)
# ├── RpcError       - JSON-RPC call failed after all retries
# ├── ScanError      - Requested on-chain object is missing or unusable
# └── DecodeError    - Log payload does not match the expected event layout
#
# =============================================================================

from typing import Optional


class ScannerError(Exception):
    """
    Base class for all scanner errors.

    Allows callers (the CLI) to catch every scanner failure in one place.
    """

    def __init__(self, message: str, context: Optional[str] = None):
        """
        Args:
            message: Error description
            context: Optional identifier (tx hash, block range) for context
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            return f"[{self.context}] {self.message}"
        return self.message


class RpcError(ScannerError):
    """JSON-RPC request failed after exhausting retries."""

    def __init__(self, method: str, last_error: Optional[BaseException], attempts: int):
        self.method = method
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"All {attempts} attempts failed. Last error: {last_error}",
            context=method,
        )


class ScanError(ScannerError):
    """Requested object (receipt, log) was not found on chain."""


class DecodeError(ScannerError):
    """Raw log does not have the shape of the expected event."""
