"""Well-known Solana mints and the static decimals registry."""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Dict, FrozenSet, Union

# Wrapped SOL doubles as the native-asset sentinel
NATIVE_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
JUP_MINT = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"
WIF_MINT = "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm"
RAY_MINT = "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R"
PYTH_MINT = "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3"

DEFAULT_DECIMALS = 6

TOKEN_DECIMALS: Dict[str, int] = {
    NATIVE_MINT: 9,
    USDC_MINT: 6,
    USDT_MINT: 6,
    BONK_MINT: 5,
    JUP_MINT: 6,
    WIF_MINT: 6,
    RAY_MINT: 6,
    PYTH_MINT: 6,
}

STABLE_MINTS: FrozenSet[str] = frozenset({USDC_MINT, USDT_MINT})

STABLE_PRICE_USD = Decimal("1.0")


def get_decimals(asset: str) -> int:
    """On-chain decimal precision for ``asset``; unknown mints default to 6."""
    return TOKEN_DECIMALS.get(asset, DEFAULT_DECIMALS)


def is_native(asset: str) -> bool:
    return asset == NATIVE_MINT


def is_stable(asset: str) -> bool:
    return asset in STABLE_MINTS


def to_ui_amount(amount: int, asset: str) -> Decimal:
    """Convert smallest units to whole units."""
    return Decimal(amount).scaleb(-get_decimals(asset))


def to_base_units(ui_amount: Union[Decimal, int], asset: str) -> int:
    """Convert whole units to smallest units, rounding down."""
    scaled = Decimal(ui_amount).scaleb(get_decimals(asset))
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


__all__ = [
    "NATIVE_MINT",
    "USDC_MINT",
    "USDT_MINT",
    "BONK_MINT",
    "JUP_MINT",
    "WIF_MINT",
    "RAY_MINT",
    "PYTH_MINT",
    "DEFAULT_DECIMALS",
    "TOKEN_DECIMALS",
    "STABLE_MINTS",
    "STABLE_PRICE_USD",
    "get_decimals",
    "is_native",
    "is_stable",
    "to_ui_amount",
    "to_base_units",
]
