"""
Swap Transaction Builder.

Turns a previously served quote into an unsigned transaction. The provider
that produced the quote goes first and gets its native payload back
untouched; if it fails, the remaining providers are tried in chain order
with a fresh request built from the quote's assets, amount and slippage.

Display-only quotes (fallback estimates and pool-derived estimates) are
rejected before any network call.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import structlog

from ...config import settings
from ...providers.base import PricedQuoteBackend
from ...providers.jupiter import JupiterQuoteBackend
from ...providers.orca import OrcaQuoteBackend
from ...providers.raydium import RaydiumQuoteBackend
from .errors import BuildFailed, InvalidQuoteRequest, NotExecutable, ProviderUnavailable
from .models import SWAP_CAPABLE_PROVIDERS, ProviderId, Quote, UnsignedTransaction
from .pricing import get_price_oracle

logger = structlog.stdlib.get_logger(__name__)


class SwapTransactionBuilder:
    def __init__(self, builders: Sequence[PricedQuoteBackend]) -> None:
        self.builders: List[PricedQuoteBackend] = list(builders)
        self._by_provider: Dict[ProviderId, PricedQuoteBackend] = {
            builder.provider_id: builder for builder in self.builders
        }

    def _attempt_order(self, provider_id: ProviderId) -> List[PricedQuoteBackend]:
        preferred = self._by_provider.get(provider_id)
        rest = [builder for builder in self.builders if builder is not preferred]
        return [preferred, *rest] if preferred else rest

    async def build_transaction(self, quote: Quote, wallet: str) -> UnsignedTransaction:
        if not quote.executable:
            logger.info("swap_rejected_not_executable", provider=quote.provider_id.value)
            raise NotExecutable()
        if quote.provider_id not in SWAP_CAPABLE_PROVIDERS:
            logger.info("swap_rejected_estimate", provider=quote.provider_id.value)
            raise NotExecutable(
                "This quote is a pool-derived price estimate and cannot be executed. "
                "Request a fresh quote once a DEX aggregator is reachable."
            )
        if not wallet:
            raise InvalidQuoteRequest("walletIdentity is required")

        for builder in self._attempt_order(quote.provider_id):
            try:
                transaction = await builder.build_transaction(quote, wallet)
            except (ProviderUnavailable, BuildFailed) as exc:
                logger.warning(
                    "swap_build_failed",
                    provider=builder.name,
                    quote_provider=quote.provider_id.value,
                    reason=exc.message,
                )
                continue
            except Exception:
                logger.exception("swap_build_error", provider=builder.name)
                continue

            logger.info(
                "swap_built",
                provider=transaction.provider_id.value,
                quote_provider=quote.provider_id.value,
                size=len(transaction.encoded_transaction),
            )
            return transaction

        raise BuildFailed()


def default_builders() -> List[PricedQuoteBackend]:
    oracle = get_price_oracle()
    builders: List[PricedQuoteBackend] = []
    if settings.enable_jupiter:
        builders.append(JupiterQuoteBackend(oracle))
    if settings.enable_raydium:
        builders.append(RaydiumQuoteBackend(oracle))
    if settings.enable_orca:
        builders.append(OrcaQuoteBackend(oracle))
    return builders


_swap_builder: Optional[SwapTransactionBuilder] = None


def get_swap_builder() -> SwapTransactionBuilder:
    """Get the singleton swap transaction builder."""
    global _swap_builder
    if _swap_builder is None:
        _swap_builder = SwapTransactionBuilder(default_builders())
    return _swap_builder
