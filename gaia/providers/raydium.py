"""Raydium trade API provider (second in the quote chain)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from ..config import settings
from ..core.swap.errors import BuildFailed
from ..core.swap.models import ProviderId, Quote, UnsignedTransaction
from ..core.swap.tokens import is_native
from .base import PricedQuoteBackend, QuoteRequest, strip_display_fields

if TYPE_CHECKING:
    from ..core.swap.pricing import PriceOracle

COMPUTE_UNIT_PRICE_MICRO_LAMPORTS = 100_000
TX_VERSION = "V0"


class RaydiumQuoteBackend(PricedQuoteBackend):
    provider_id = ProviderId.RAYDIUM

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
        self.base_url = (base_url or settings.raydium_base_url).rstrip("/")

    async def ready(self) -> bool:
        return settings.enable_raydium

    async def health_check(self) -> Dict[str, Any]:
        return await self._probe(f"{self.base_url}/main/version")

    async def _fetch_native_quote(self, request: QuoteRequest) -> Dict[str, Any]:
        params = {
            "inputMint": request.input_asset,
            "outputMint": request.output_asset,
            "amount": str(request.amount),
            "slippageBps": str(request.slippage_bps),
            "txVersion": TX_VERSION,
        }
        data = await self._fetch(
            "GET",
            f"{self.base_url}/compute/swap-base-in",
            params=params,
            timeout=self.timeout_s,
        )
        if not isinstance(data, dict) or not data.get("success") or not isinstance(data.get("data"), dict):
            message = data.get("msg") if isinstance(data, dict) else None
            raise self.unavailable(f"Raydium compute failed: {message or 'no data'}")
        return data

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data = await self._fetch_native_quote(request)
        swap = data["data"]
        out_amount = self._parse_amount(swap.get("outputAmount"), "outputAmount")

        return await self._normalize(
            request,
            output_amount=out_amount,
            threshold=swap.get("otherAmountThreshold"),
            price_impact=swap.get("priceImpactPct", swap.get("priceImpact")),
            route=swap.get("routePlan") or [],
            payload=data,
        )

    async def build_transaction(self, quote: Quote, wallet: str) -> UnsignedTransaction:
        if quote.provider_id is self.provider_id and quote.provider_payload.get("data"):
            swap_response = quote.provider_payload
        else:
            swap_response = await self._fetch_native_quote(
                QuoteRequest(
                    input_asset=quote.input_asset,
                    output_asset=quote.output_asset,
                    amount=quote.input_amount,
                    slippage_bps=quote.slippage_bps,
                )
            )

        payload = {
            "wallet": wallet,
            "computeUnitPriceMicroLamports": str(COMPUTE_UNIT_PRICE_MICRO_LAMPORTS),
            "swapResponse": strip_display_fields(swap_response),
            "txVersion": TX_VERSION,
            "wrapSol": is_native(quote.input_asset),
            "unwrapSol": is_native(quote.output_asset),
        }
        data = await self._fetch(
            "POST",
            f"{self.base_url}/transaction/swap-base-in",
            json=payload,
            timeout=self.build_timeout_s,
        )
        if not isinstance(data, dict) or not data.get("success"):
            raise BuildFailed("Raydium transaction build was not successful")

        body = data.get("data")
        if isinstance(body, list):
            # One entry per transaction; a swap needing several is not signable as one payload
            if len(body) != 1:
                raise BuildFailed(f"Raydium returned {len(body)} transactions, expected 1")
            body = body[0]
        encoded = body.get("transaction") if isinstance(body, dict) else None
        return self._decode_transaction(encoded)
