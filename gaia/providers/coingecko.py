import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from .base import HttpProvider

logger = logging.getLogger(__name__)

SOLANA_COIN_ID = "solana"


class CoingeckoProvider(HttpProvider):
    """Coingecko API provider for the native-asset spot price"""

    name = "coingecko"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(transport=transport)
        self.api_key = settings.coingecko_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.price_timeout_seconds

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return True  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        return await self._probe(f"{self.base_url}/ping")

    async def get_simple_price(
        self,
        coin_id: str,
        *,
        include_market_data: bool = False,
    ) -> Dict[str, Any]:
        """Raw ``/simple/price`` entry for one coin; raises on HTTP errors."""
        params = {
            "ids": coin_id,
            "vs_currencies": "usd",
            "include_market_cap": str(include_market_data).lower(),
            "include_24hr_vol": str(include_market_data).lower(),
            "include_24hr_change": str(include_market_data).lower(),
        }
        data = await self._request_json(
            "GET",
            f"{self.base_url}/simple/price",
            params=params,
            timeout=self.timeout_s,
        )
        return data.get(coin_id) or {}

    async def get_native_price(self) -> Optional[Decimal]:
        """SOL spot price in USD, or None if Coingecko has nothing for it."""
        entry = await self.get_simple_price(SOLANA_COIN_ID)
        price = entry.get("usd")
        if price is None:
            return None
        try:
            value = Decimal(str(price))
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite():
            logger.warning(f"Coingecko returned a non-numeric SOL price: {price!r}")
            return None
        return value

    async def get_native_market(self) -> Dict[str, Any]:
        """SOL price with 24h change, volume and market cap for the dashboard."""
        entry = await self.get_simple_price(SOLANA_COIN_ID, include_market_data=True)
        if "usd" not in entry:
            return {}
        return {
            "price_usd": entry["usd"],
            "change_24h": entry.get("usd_24h_change"),
            "volume_24h": entry.get("usd_24h_vol"),
            "market_cap": entry.get("usd_market_cap"),
            "_source": {"name": "coingecko", "url": "https://coingecko.com"},
        }
