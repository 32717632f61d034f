"""Address normalization helpers."""

from __future__ import annotations


def normalize_address(value: str | None) -> str:
    """Normalize token addresses used as storage and dedup keys.

    EVM addresses (0x-prefixed hex) are case-insensitive and get lowercased.
    Solana base58 addresses are case-sensitive and are only trimmed.
    """
    address = str(value or "").strip()
    if address[:2].lower() == "0x":
        return address.lower()
    return address


def same_chain(left: str | None, right: str | None) -> bool:
    return str(left or "").strip().lower() == str(right or "").strip().lower()
