"""
Quote Provider Chain.

Backends are queried one at a time in priority order; the first normalized
quote wins. A failing backend only advances the chain. When every backend
has failed, the fallback synthesizer produces a display-only estimate, and
only if that also fails does the caller see ``NoQuoteAvailable``.

Backends never run concurrently; the next one starts only after the
previous one failed.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import structlog

from ...config import settings
from ...providers.base import QuoteBackend, QuoteRequest
from ...providers.jupiter import JupiterQuoteBackend
from ...providers.orca import OrcaQuoteBackend
from ...providers.raydium import RaydiumQuoteBackend
from .errors import InvalidQuoteRequest, NoQuoteAvailable, PriceUnavailable, ProviderUnavailable
from .estimates import DexScreenerPoolBackend, FallbackQuoteSynthesizer
from .models import BPS_DENOMINATOR, Quote
from .pricing import PriceOracle, get_price_oracle

logger = structlog.stdlib.get_logger(__name__)


def validate_request(request: QuoteRequest) -> None:
    if not request.input_asset or not request.output_asset:
        raise InvalidQuoteRequest("inputAsset and outputAsset are required")
    if request.input_asset == request.output_asset:
        raise InvalidQuoteRequest("inputAsset and outputAsset must differ")
    if request.amount <= 0:
        raise InvalidQuoteRequest("amount must be a positive integer in smallest units")
    if not 0 <= request.slippage_bps <= BPS_DENOMINATOR:
        raise InvalidQuoteRequest("slippageBps must be between 0 and 10000")


class QuoteService:
    def __init__(
        self,
        backends: Sequence[QuoteBackend],
        synthesizer: Optional[FallbackQuoteSynthesizer],
    ) -> None:
        self.backends: List[QuoteBackend] = list(backends)
        self.synthesizer = synthesizer

    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: int,
    ) -> Quote:
        request = QuoteRequest(
            input_asset=input_asset,
            output_asset=output_asset,
            amount=amount,
            slippage_bps=slippage_bps,
        )
        validate_request(request)

        failures: List[str] = []
        for backend in self.backends:
            try:
                quote = await backend.get_quote(request)
            except ProviderUnavailable as exc:
                logger.warning("quote_provider_failed", provider=exc.provider_id, reason=exc.reason)
                failures.append(exc.provider_id)
                continue
            except Exception:
                # Malformed upstream payloads must not take the request down
                logger.exception("quote_provider_error", provider=backend.name)
                failures.append(backend.name)
                continue

            logger.info(
                "quote_served",
                provider=quote.provider_id.value,
                input_asset=input_asset,
                output_asset=output_asset,
                output_amount=quote.output_amount,
                skipped=failures,
            )
            return quote

        logger.warning("all_quote_providers_failed", providers=failures)
        if self.synthesizer is not None:
            try:
                return await self.synthesizer.synthesize(request)
            except PriceUnavailable as exc:
                logger.warning("fallback_quote_unavailable", asset=exc.asset)

        raise NoQuoteAvailable()


def default_backends(oracle: PriceOracle) -> List[QuoteBackend]:
    """Chain order: Jupiter, Raydium, Orca, then the pool-derived estimate."""
    backends: List[QuoteBackend] = []
    if settings.enable_jupiter:
        backends.append(JupiterQuoteBackend(oracle))
    if settings.enable_raydium:
        backends.append(RaydiumQuoteBackend(oracle))
    if settings.enable_orca:
        backends.append(OrcaQuoteBackend(oracle))
    if settings.enable_dexscreener_quotes:
        backends.append(DexScreenerPoolBackend())
    return backends


_quote_service: Optional[QuoteService] = None


def get_quote_service() -> QuoteService:
    """Get the singleton quote service."""
    global _quote_service
    if _quote_service is None:
        oracle = get_price_oracle()
        _quote_service = QuoteService(
            backends=default_backends(oracle),
            synthesizer=FallbackQuoteSynthesizer(oracle),
        )
    return _quote_service

