"""
Price Oracle Adapter.

Resolves a USD unit price for a mint:

- native SOL  -> Coingecko spot price
- USDC / USDT -> constant 1.0, no network
- anything    -> deepest DexScreener pool on the target chain

A missing price is a normal outcome here, not an error: every lookup returns
``None`` on timeout, HTTP failure or empty result and callers degrade.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Optional, Tuple

import httpx
import structlog

from ...config import settings
from ...providers.coingecko import CoingeckoProvider
from ...providers.dexscreener import DexScreenerProvider
from .errors import PriceUnavailable
from .tokens import STABLE_PRICE_USD, is_native, is_stable

logger = structlog.stdlib.get_logger(__name__)


class PriceOracle:
    def __init__(
        self,
        coingecko: Optional[CoingeckoProvider] = None,
        dexscreener: Optional[DexScreenerProvider] = None,
        *,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.timeout_s = timeout_s or settings.price_timeout_seconds
        self.coingecko = coingecko or CoingeckoProvider(timeout_s=self.timeout_s)
        self.dexscreener = dexscreener or DexScreenerProvider(timeout_s=self.timeout_s)

    async def get_usd_price(self, asset: str) -> Optional[Decimal]:
        if is_stable(asset):
            return STABLE_PRICE_USD

        source = "coingecko" if is_native(asset) else "dexscreener"
        try:
            if is_native(asset):
                price = await self.coingecko.get_native_price()
            else:
                pool = await self.dexscreener.get_best_pool(asset, timeout=self.timeout_s)
                price = pool.price_usd if pool else None
        except httpx.HTTPError as exc:
            logger.warning(
                "price_lookup_failed",
                asset=asset,
                source=source,
                error=str(exc) or type(exc).__name__,
            )
            return None
        except (ValueError, AttributeError, ArithmeticError) as exc:
            # Non-JSON body, unexpected payload shape or a non-numeric price
            logger.warning("price_payload_invalid", asset=asset, source=source, error=str(exc))
            return None

        if price is None or not price.is_finite() or price <= 0:
            logger.info("price_missing", asset=asset, source=source)
            return None
        return price

    async def get_usd_prices(
        self, input_asset: str, output_asset: str
    ) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """Both prices, looked up concurrently."""
        input_price, output_price = await asyncio.gather(
            self.get_usd_price(input_asset),
            self.get_usd_price(output_asset),
        )
        return input_price, output_price

    async def require_usd_price(self, asset: str) -> Decimal:
        price = await self.get_usd_price(asset)
        if price is None:
            raise PriceUnavailable(asset)
        return price


_price_oracle: Optional[PriceOracle] = None


def get_price_oracle() -> PriceOracle:
    """Get the singleton price oracle."""
    global _price_oracle
    if _price_oracle is None:
        _price_oracle = PriceOracle()
    return _price_oracle
