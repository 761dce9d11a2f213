"""
DexScreener liquidity-aggregator client.

Used two ways: as the price source for long-tail tokens, and as the raw
material for pool-derived quote estimates. Only pairs on the configured chain
are considered; among them the deepest pool (highest ``liquidity.usd``) wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import settings
from .base import HttpProvider

logger = logging.getLogger(__name__)


def _liquidity_usd(pair: Dict[str, Any]) -> float:
    liquidity = pair.get("liquidity") or {}
    try:
        return float(liquidity.get("usd") or 0)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class PoolRef:
    """The parts of a DexScreener pair we keep on a quote route."""

    pair_address: str
    dex_id: str
    base_token: str
    quote_token: str
    liquidity_usd: float
    price_usd: Optional[Decimal]

    @classmethod
    def from_api(cls, pair: Dict[str, Any]) -> "PoolRef":
        try:
            price = Decimal(str(pair.get("priceUsd"))) if pair.get("priceUsd") else None
        except InvalidOperation:
            price = None
        if price is not None and not (price.is_finite() and price > 0):
            price = None
        return cls(
            pair_address=str(pair.get("pairAddress", "")),
            dex_id=str(pair.get("dexId", "")),
            base_token=str((pair.get("baseToken") or {}).get("address", "")),
            quote_token=str((pair.get("quoteToken") or {}).get("address", "")),
            liquidity_usd=_liquidity_usd(pair),
            price_usd=price,
        )

    def connects(self, asset_a: str, asset_b: str) -> bool:
        return {self.base_token, self.quote_token} == {asset_a, asset_b}

    def to_hop(self) -> Dict[str, Any]:
        return {
            "pool": self.pair_address,
            "dex": self.dex_id,
            "liquidityUsd": self.liquidity_usd,
        }


class DexScreenerProvider(HttpProvider):
    """Thin wrapper around the public DexScreener REST API."""

    name = "dexscreener"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        chain_id: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(transport=transport)
        self.base_url = (base_url or settings.dexscreener_base_url).rstrip("/")
        self.chain_id = chain_id or settings.target_chain
        self.timeout_s = timeout_s or settings.price_timeout_seconds

    async def ready(self) -> bool:
        return True

    async def health_check(self) -> Dict[str, Any]:
        return await self._probe(f"{self.base_url}/latest/dex/search", params={"q": "SOL"})

    async def get_token_pairs(self, asset: str, *, timeout: Optional[float] = None) -> List[PoolRef]:
        """All pairs on the target chain that trade ``asset``; raises on HTTP errors."""
        data = await self._request_json(
            "GET",
            f"{self.base_url}/latest/dex/tokens/{asset}",
            timeout=timeout or self.timeout_s,
        )
        return self._chain_pairs((data or {}).get("pairs") or [])

    async def search(self, query: str, *, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Raw search hits on the target chain, in DexScreener's order."""
        data = await self._request_json(
            "GET",
            f"{self.base_url}/latest/dex/search",
            params={"q": query},
            timeout=timeout or self.timeout_s,
        )
        return self._on_chain((data or {}).get("pairs") or [])

    def _on_chain(self, pairs: Iterable[Any]) -> List[Dict[str, Any]]:
        return [pair for pair in pairs if isinstance(pair, dict) and pair.get("chainId") == self.chain_id]

    def _chain_pairs(self, pairs: Iterable[Any]) -> List[PoolRef]:
        return [PoolRef.from_api(pair) for pair in self._on_chain(pairs)]

    @staticmethod
    def deepest(pools: Iterable[PoolRef]) -> Optional[PoolRef]:
        """Highest-liquidity pool that carries a usable price."""
        priced = [pool for pool in pools if pool.price_usd is not None]
        if not priced:
            return None
        return max(priced, key=lambda pool: pool.liquidity_usd)

    async def get_best_pool(self, asset: str, *, timeout: Optional[float] = None) -> Optional[PoolRef]:
        """Deepest pool quoting ``asset``. ``priceUsd`` is the base token's price,
        so pairs where ``asset`` is the quote side are skipped."""
        pools = await self.get_token_pairs(asset, timeout=timeout)
        return self.deepest(pool for pool in pools if pool.base_token == asset)
