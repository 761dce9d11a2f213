"""
Price-derived quotes.

Neither estimator touches a liquidity venue: both convert the input amount
to USD and back into the output asset, then shave a fixed haircut.

- ``DexScreenerPoolBackend`` (last live entry of the chain) prices both legs
  from the deepest DexScreener pools and takes the 0.3% venue fee.
- ``FallbackQuoteSynthesizer`` runs only after the whole chain failed, prices
  through the oracle and takes a wider 0.5% spread. Its quotes are display-only.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog

from ...config import settings
from ...providers.base import QuoteBackend, QuoteRequest
from ...providers.dexscreener import DexScreenerProvider, PoolRef
from .errors import NoPriceData
from .models import PriceInfo, ProviderId, Quote, minimum_output_for
from .pricing import PriceOracle
from .tokens import STABLE_PRICE_USD, is_stable, to_base_units, to_ui_amount

logger = structlog.stdlib.get_logger(__name__)

POOL_FEE_MULTIPLIER = Decimal("0.997")        # 0.3% venue fee
POOL_PRICE_IMPACT_PERCENT = Decimal("0.3")
FALLBACK_SPREAD_MULTIPLIER = Decimal("0.995")  # 0.5% synthetic spread
FALLBACK_PRICE_IMPACT_PERCENT = Decimal("0.5")


@dataclass(frozen=True)
class PriceDerivedAmounts:
    input_ui: Decimal
    output_ui: Decimal
    output_amount: int


def derive_output(
    request: QuoteRequest,
    input_price: Decimal,
    output_price: Decimal,
    multiplier: Decimal,
) -> PriceDerivedAmounts:
    """Convert through USD and apply ``multiplier``; output is floored to base units."""
    input_ui = to_ui_amount(request.amount, request.input_asset)
    output_ui = input_ui * input_price / output_price * multiplier
    return PriceDerivedAmounts(
        input_ui=input_ui,
        output_ui=output_ui,
        output_amount=to_base_units(output_ui, request.output_asset),
    )


@dataclass(frozen=True)
class _Leg:
    price: Decimal
    best: Optional[PoolRef]
    pools: Tuple[PoolRef, ...]


class DexScreenerPoolBackend(QuoteBackend):
    """Pool-derived estimate (provider D)."""

    provider_id = ProviderId.DEXSCREENER

    def __init__(
        self,
        dexscreener: Optional[DexScreenerProvider] = None,
        *,
        timeout_s: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.timeout_s = timeout_s or settings.quote_timeout_seconds
        self.dexscreener = dexscreener or DexScreenerProvider(timeout_s=self.timeout_s)

    async def ready(self) -> bool:
        return settings.enable_dexscreener_quotes

    async def health_check(self) -> Dict[str, Any]:
        return await self.dexscreener.health_check()

    async def _leg(self, asset: str) -> _Leg:
        if is_stable(asset):
            return _Leg(price=STABLE_PRICE_USD, best=None, pools=())
        try:
            pools = await self.dexscreener.get_token_pairs(asset, timeout=self.timeout_s)
        except httpx.TimeoutException:
            raise self.unavailable(f"timed out pricing {asset}") from None
        except httpx.HTTPStatusError as exc:
            raise self.unavailable(f"HTTP {exc.response.status_code} pricing {asset}") from None
        except (httpx.HTTPError, ValueError) as exc:
            raise self.unavailable(f"pricing {asset} failed: {exc}") from None

        best = DexScreenerProvider.deepest(pool for pool in pools if pool.base_token == asset)
        if best is None or best.price_usd is None:
            raise self.unavailable(f"no liquidity pool discoverable for {asset}")
        return _Leg(price=best.price_usd, best=best, pools=tuple(pools))

    @staticmethod
    def _route_pool(request: QuoteRequest, legs: List[_Leg]) -> Optional[PoolRef]:
        seen = [pool for leg in legs for pool in leg.pools]
        direct = [pool for pool in seen if pool.connects(request.input_asset, request.output_asset)]
        if direct:
            return max(direct, key=lambda pool: pool.liquidity_usd)
        best = [leg.best for leg in legs if leg.best is not None]
        if best:
            return max(best, key=lambda pool: pool.liquidity_usd)
        return None

    async def get_quote(self, request: QuoteRequest) -> Quote:
        input_leg, output_leg = await asyncio.gather(
            self._leg(request.input_asset),
            self._leg(request.output_asset),
        )
        amounts = derive_output(request, input_leg.price, output_leg.price, POOL_FEE_MULTIPLIER)
        pool = self._route_pool(request, [input_leg, output_leg])

        return Quote(
            input_asset=request.input_asset,
            output_asset=request.output_asset,
            input_amount=request.amount,
            output_amount=amounts.output_amount,
            minimum_output_amount=minimum_output_for(amounts.output_amount, request.slippage_bps),
            slippage_bps=request.slippage_bps,
            price_impact_percent=POOL_PRICE_IMPACT_PERCENT,
            route=(pool.to_hop(),) if pool else (),
            provider_id=self.provider_id,
            executable=True,
            price_info=PriceInfo(
                input_price_usd=input_leg.price,
                output_price_usd=output_leg.price,
                effective_rate=amounts.output_ui / amounts.input_ui,
            ),
            provider_payload={
                "poolData": pool.to_hop() if pool else None,
                "inputPriceUsd": str(input_leg.price),
                "outputPriceUsd": str(output_leg.price),
            },
        )


class FallbackQuoteSynthesizer:
    """Last resort when every venue is unreachable: an oracle-priced estimate."""

    def __init__(self, oracle: PriceOracle) -> None:
        self.oracle = oracle

    async def synthesize(self, request: QuoteRequest) -> Quote:
        input_price, output_price = await self.oracle.get_usd_prices(
            request.input_asset, request.output_asset
        )
        if input_price is None:
            raise NoPriceData(request.input_asset)
        if output_price is None:
            raise NoPriceData(request.output_asset)

        amounts = derive_output(request, input_price, output_price, FALLBACK_SPREAD_MULTIPLIER)
        logger.info(
            "fallback_quote_synthesized",
            input_asset=request.input_asset,
            output_asset=request.output_asset,
            output_amount=amounts.output_amount,
        )
        return Quote(
            input_asset=request.input_asset,
            output_asset=request.output_asset,
            input_amount=request.amount,
            output_amount=amounts.output_amount,
            minimum_output_amount=minimum_output_for(amounts.output_amount, request.slippage_bps),
            slippage_bps=request.slippage_bps,
            price_impact_percent=FALLBACK_PRICE_IMPACT_PERCENT,
            route=(),
            provider_id=ProviderId.FALLBACK,
            executable=False,
            price_info=PriceInfo(
                input_price_usd=input_price,
                output_price_usd=output_price,
                effective_rate=input_price / output_price * FALLBACK_SPREAD_MULTIPLIER,
            ),
        )
