"""Orca Whirlpools provider (third in the quote chain)."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from ..config import settings
from ..core.swap.errors import BuildFailed
from ..core.swap.models import BPS_DENOMINATOR, ProviderId, Quote, UnsignedTransaction
from .base import PricedQuoteBackend, QuoteRequest, strip_display_fields

if TYPE_CHECKING:
    from ..core.swap.pricing import PriceOracle


def slippage_fraction(slippage_bps: int) -> str:
    """Orca takes slippage as a fraction, e.g. 50 bps -> "0.005"."""
    return str(Decimal(slippage_bps) / Decimal(BPS_DENOMINATOR))


class OrcaQuoteBackend(PricedQuoteBackend):
    provider_id = ProviderId.ORCA

    def __init__(
        self,
        oracle: "PriceOracle",
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        build_timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            oracle,
            timeout_s=timeout_s or settings.quote_timeout_seconds,
            build_timeout_s=build_timeout_s or settings.build_timeout_seconds,
            transport=transport,
        )
        self.base_url = (base_url or settings.orca_base_url).rstrip("/")

    async def ready(self) -> bool:
        return settings.enable_orca

    async def health_check(self) -> Dict[str, Any]:
        return await self._probe(f"{self.base_url}/token/list")

    async def get_quote(self, request: QuoteRequest) -> Quote:
        params = {
            "inputMint": request.input_asset,
            "outputMint": request.output_asset,
            "amount": str(request.amount),
            "slippage": slippage_fraction(request.slippage_bps),
        }
        data = await self._fetch("GET", f"{self.base_url}/quote", params=params, timeout=self.timeout_s)
        if not isinstance(data, dict):
            raise self.unavailable("unexpected response shape")

        out_amount = self._parse_amount(data.get("outAmount"), "outAmount")
        return await self._normalize(
            request,
            output_amount=out_amount,
            threshold=data.get("otherAmountThreshold"),
            price_impact=data.get("priceImpact"),
            route=data.get("route") or [],
            payload=data,
        )

    async def build_transaction(self, quote: Quote, wallet: str) -> UnsignedTransaction:
        payload: Dict[str, Any] = {
            "wallet": wallet,
            "inputMint": quote.input_asset,
            "outputMint": quote.output_asset,
            "amount": str(quote.input_amount),
            "slippage": slippage_fraction(quote.slippage_bps),
        }
        if quote.provider_id is self.provider_id:
            # Orca's swap endpoint accepts its own quote fields alongside the request
            payload.update(strip_display_fields(quote.provider_payload))

        data = await self._fetch("POST", f"{self.base_url}/swap", json=payload, timeout=self.build_timeout_s)
        if not isinstance(data, dict):
            raise BuildFailed("Orca swap response is not an object")
        return self._decode_transaction(data.get("transaction"))
