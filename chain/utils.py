# =============================================================================
# POLYGON CTF SCANNER
# Module: chain/utils.py
# Purpose: Value normalisation and display formatting
# =============================================================================

from decimal import Decimal
from typing import Union

from web3 import Web3

BytesLike = Union[str, bytes, bytearray, int]


def to_bytes32(value: BytesLike) -> bytes:
    """
    Normalise a bytes32 value.

    Accepts hex strings (with or without 0x), raw bytes / HexBytes and
    non-negative ints below 2**256.

    Raises:
        ValueError: If the value is not exactly 32 bytes
    """
    if isinstance(value, bool):
        raise ValueError("bool is not a bytes32 value")

    if isinstance(value, int):
        if value < 0 or value >= 2**256:
            raise ValueError(f"Integer out of bytes32 range: {value}")
        return value.to_bytes(32, "big")

    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ValueError(f"Invalid hex string: {value!r}")
    else:
        raise ValueError(f"Unsupported bytes32 type: {type(value).__name__}")

    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    return raw


def to_hex32(value: BytesLike) -> str:
    """Return a 0x-prefixed, lowercase, 64-digit hex string."""
    return "0x" + to_bytes32(value).hex()


def format_address(addr: Union[str, bytes]) -> str:
    """Return the EIP-55 checksummed form of an address."""
    if isinstance(addr, (bytes, bytearray)):
        if len(addr) != 20:
            raise ValueError(f"Expected 20-byte address, got {len(addr)}")
        addr = "0x" + bytes(addr).hex()
    return Web3.to_checksum_address(addr)


def topic_to_address(topic: BytesLike) -> str:
    """Extract an indexed address from a 32-byte log topic."""
    return format_address(to_bytes32(topic)[12:])


def uint_to_address(value: int) -> str:
    """Interpret the low 20 bytes of a uint256 as an address."""
    return format_address(to_bytes32(value)[12:])


def word_to_int(data: bytes, index: int) -> int:
    """Read the index-th 32-byte big-endian word from ABI data."""
    start = index * 32
    word = bytes(data[start:start + 32])
    if len(word) != 32:
        raise ValueError(f"Data too short for word {index}")
    return int.from_bytes(word, "big")


def to_human(amount: int, decimals: int) -> Decimal:
    """Scale a raw integer token amount by its decimals."""
    return Decimal(int(amount)).scaleb(-int(decimals))


def calculate_price(
    maker_amount: int,
    maker_decimals: int,
    taker_amount: int,
    taker_decimals: int,
) -> str:
    """
    Price as maker units per taker unit, 6 decimal places.

    Returns "0.0" when the taker side is empty.
    """
    taker = to_human(taker_amount, taker_decimals)
    if taker == 0:
        return "0.0"

    maker = to_human(maker_amount, maker_decimals)
    return f"{maker / taker:.6f}"


def truncate_str(s: str, start_chars: int, end_chars: int) -> str:
    """Shorten long hashes to 'head...tail' for table views."""
    if len(s) <= start_chars + end_chars:
        return s
    return f"{s[:start_chars]}...{s[len(s) - end_chars:]}"


def format_token_amount(amount: float) -> str:
    if amount == 0:
        return "0.0"
    if amount < 0.0001:
        return f"{amount:.2e}"
    return f"{amount:.4f}"
