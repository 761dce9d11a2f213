"""
Jupiter swap provider (primary aggregator).

Jupiter serves the same v6 API from several hosts. Each host is tried in
order; we move on only when the host itself fails (network error, timeout,
non-2xx). A 2xx answer is final: an ``outAmount`` of "0" is a valid result,
a body without ``outAmount`` is a failed attempt for the whole provider.

Usage:
    backend = JupiterQuoteBackend(oracle)
    quote = await backend.get_quote(QuoteRequest(NATIVE_MINT, USDC_MINT, 1_000_000_000, 50))
    tx = await backend.build_transaction(quote, wallet="...")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import httpx

from ..config import settings
from ..core.swap.errors import BuildFailed, ProviderUnavailable
from ..core.swap.models import ProviderId, Quote, UnsignedTransaction
from ..core.swap.tokens import NATIVE_MINT, USDC_MINT
from .base import PricedQuoteBackend, QuoteRequest, strip_display_fields

if TYPE_CHECKING:
    from ..core.swap.pricing import PriceOracle

logger = logging.getLogger(__name__)

MAX_PRIORITY_FEE_LAMPORTS = 10_000_000  # 0.01 SOL
DYNAMIC_SLIPPAGE_MAX_BPS = 300


class JupiterQuoteBackend(PricedQuoteBackend):
    provider_id = ProviderId.JUPITER

    def __init__(
        self,
        oracle: "PriceOracle",
        *,
        endpoints: Optional[Sequence[str]] = None,
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
        self.endpoints: List[str] = [url.rstrip("/") for url in (endpoints or settings.jupiter_quote_urls)]

    async def ready(self) -> bool:
        return settings.enable_jupiter and bool(self.endpoints)

    async def health_check(self) -> Dict[str, Any]:
        if not self.endpoints:
            return {"status": "unavailable", "reason": "No endpoints configured"}
        return await self._probe(
            f"{self.endpoints[0]}/quote",
            params={"inputMint": NATIVE_MINT, "outputMint": USDC_MINT, "amount": "1000000"},
        )

    def quote_params(self, request: QuoteRequest) -> Dict[str, str]:
        return {
            "inputMint": request.input_asset,
            "outputMint": request.output_asset,
            "amount": str(request.amount),
            "slippageBps": str(request.slippage_bps),
            "swapMode": "ExactIn",
        }

    async def _fetch_native_quote(self, request: QuoteRequest) -> Dict[str, Any]:
        params = self.quote_params(request)
        last_error: Optional[ProviderUnavailable] = None

        for endpoint in self.endpoints:
            try:
                return await self._fetch("GET", f"{endpoint}/quote", params=params, timeout=self.timeout_s)
            except ProviderUnavailable as exc:
                logger.info(f"Jupiter endpoint {endpoint} failed: {exc.reason}")
                last_error = exc

        raise last_error or self.unavailable("no endpoints configured")

    async def get_quote(self, request: QuoteRequest) -> Quote:
        data = await self._fetch_native_quote(request)
        if not isinstance(data, dict):
            raise self.unavailable("unexpected response shape")
        if "error" in data:
            raise self.unavailable(f"Jupiter quote error: {data['error']}")

        out_amount = self._parse_amount(data.get("outAmount"), "outAmount")
        route = [step.get("swapInfo") or {} for step in data.get("routePlan") or [] if isinstance(step, dict)]

        return await self._normalize(
            request,
            output_amount=out_amount,
            threshold=data.get("otherAmountThreshold"),
            price_impact=data.get("priceImpactPct"),
            route=route,
            payload=data,
        )

    async def build_transaction(self, quote: Quote, wallet: str) -> UnsignedTransaction:
        if quote.provider_id is self.provider_id and quote.provider_payload:
            native_quote = quote.provider_payload
        else:
            # Foreign quote: Jupiter needs its own quoteResponse, so re-quote
            native_quote = await self._fetch_native_quote(
                QuoteRequest(
                    input_asset=quote.input_asset,
                    output_asset=quote.output_asset,
                    amount=quote.input_amount,
                    slippage_bps=quote.slippage_bps,
                )
            )
            if not isinstance(native_quote, dict) or native_quote.get("outAmount") in (None, ""):
                raise self.unavailable("re-quote for swap returned no outAmount")

        payload = {
            "quoteResponse": strip_display_fields(native_quote),
            "userPublicKey": wallet,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
            "dynamicSlippage": {"maxBps": DYNAMIC_SLIPPAGE_MAX_BPS},
            "prioritizationFeeLamports": {
                "priorityLevelWithMaxLamports": {
                    "maxLamports": MAX_PRIORITY_FEE_LAMPORTS,
                    "priorityLevel": "high",
                }
            },
        }

        last_error: Optional[Exception] = None
        for endpoint in self.endpoints:
            try:
                data = await self._fetch("POST", f"{endpoint}/swap", json=payload, timeout=self.build_timeout_s)
                if not isinstance(data, dict):
                    raise BuildFailed("Jupiter swap response is not an object")
                if "error" in data:
                    raise BuildFailed(f"Jupiter swap error: {data['error']}")
                return self._decode_transaction(data.get("swapTransaction"))
            except (ProviderUnavailable, BuildFailed) as exc:
                logger.info(f"Jupiter swap endpoint {endpoint} failed: {exc}")
                last_error = exc

        raise last_error or self.unavailable("no endpoints configured")
