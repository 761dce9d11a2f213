from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import httpx

from ..core.swap.errors import BuildFailed, ProviderUnavailable
from ..core.swap.models import (
    PriceInfo,
    ProviderId,
    Quote,
    UnsignedTransaction,
    minimum_output_for,
)
from ..core.swap.tokens import to_ui_amount

if TYPE_CHECKING:
    from ..core.swap.pricing import PriceOracle


# Keys we add for the UI; upstream build endpoints must never see them
DISPLAY_ONLY_FIELDS = frozenset({
    "priceInfo",
    "provider",
    "providerId",
    "executable",
    "isFallbackQuote",
})


def strip_display_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in DISPLAY_ONLY_FIELDS}


@dataclass(frozen=True)
class QuoteRequest:
    """Logical quote parameters, identical for every backend."""

    input_asset: str
    output_asset: str
    amount: int
    slippage_bps: int


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class HttpProvider(Provider):
    """Provider speaking JSON over HTTP through a per-call httpx client."""

    def __init__(self, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        **kwargs: Any,
    ) -> Any:
        """Issue one request and decode the JSON body.

        The client is closed when the block exits, so a timed-out call releases
        its connection instead of lingering.
        """
        async with self._client(timeout) as client:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()

    async def _probe(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}
        try:
            async with self._client(self.timeout_s) as client:
                response = await client.get(url, **kwargs)
                return {
                    "status": "healthy" if response.status_code < 500 else "error",
                    "http_status": response.status_code,
                    "latency_ms": int(response.elapsed.total_seconds() * 1000),
                }
        except httpx.HTTPError as e:
            return {"status": "error", "reason": str(e) or type(e).__name__}


class QuoteBackend(HttpProvider):
    """One entry of the quote provider chain."""

    provider_id: ProviderId

    @property
    def name(self) -> str:  # type: ignore[override]
        return self.provider_id.value

    @abstractmethod
    async def get_quote(self, request: QuoteRequest) -> Quote:
        """Return a normalized quote or raise ``ProviderUnavailable``."""

    def unavailable(self, reason: str) -> ProviderUnavailable:
        return ProviderUnavailable(self.provider_id.value, reason)

    async def _fetch(self, method: str, url: str, *, timeout: float, **kwargs: Any) -> Any:
        """``_request_json`` with every transport/protocol fault mapped to ProviderUnavailable."""
        try:
            return await self._request_json(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException:
            raise self.unavailable(f"timed out after {timeout}s") from None
        except httpx.HTTPStatusError as exc:
            raise self.unavailable(f"HTTP {exc.response.status_code}") from None
        except httpx.HTTPError as exc:
            raise self.unavailable(str(exc) or type(exc).__name__) from None
        except ValueError:
            raise self.unavailable("response body is not JSON") from None


class PricedQuoteBackend(QuoteBackend):
    """Live DEX backend: normalizes native responses and attaches display prices."""

    def __init__(
        self,
        oracle: "PriceOracle",
        *,
        timeout_s: float,
        build_timeout_s: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(transport=transport)
        self.oracle = oracle
        self.timeout_s = timeout_s
        self.build_timeout_s = build_timeout_s

    @abstractmethod
    async def build_transaction(self, quote: Quote, wallet: str) -> UnsignedTransaction:
        """Build an unsigned transaction, or raise ``ProviderUnavailable``/``BuildFailed``."""

    def _parse_amount(self, value: Any, field_name: str) -> int:
        if value is None or value == "":
            raise self.unavailable(f"response missing {field_name}")
        try:
            amount = int(str(value))
        except ValueError:
            raise self.unavailable(f"{field_name} is not an integer: {value!r}") from None
        if amount < 0:
            raise self.unavailable(f"{field_name} is negative")
        return amount

    def _decode_transaction(self, encoded: Any) -> UnsignedTransaction:
        if not encoded or not isinstance(encoded, str):
            raise BuildFailed(f"{self.name} response missing transaction")
        try:
            return UnsignedTransaction.from_base64(encoded, self.provider_id)
        except ValueError:
            raise BuildFailed(f"{self.name} returned an undecodable transaction") from None

    async def _normalize(
        self,
        request: QuoteRequest,
        *,
        output_amount: int,
        threshold: Optional[Any] = None,
        price_impact: Any = 0,
        route: Iterable[Dict[str, Any]] = (),
        payload: Dict[str, Any],
    ) -> Quote:
        minimum = minimum_output_for(output_amount, request.slippage_bps)
        if threshold not in (None, ""):
            try:
                native_minimum = int(str(threshold))
            except ValueError:
                native_minimum = None
            if native_minimum is not None and 0 <= native_minimum <= output_amount:
                minimum = native_minimum

        input_price, output_price = await self.oracle.get_usd_prices(
            request.input_asset, request.output_asset
        )
        in_ui = to_ui_amount(request.amount, request.input_asset)
        out_ui = to_ui_amount(output_amount, request.output_asset)

        try:
            impact = Decimal(str(price_impact or 0))
        except InvalidOperation:
            impact = Decimal(0)

        return Quote(
            input_asset=request.input_asset,
            output_asset=request.output_asset,
            input_amount=request.amount,
            output_amount=output_amount,
            minimum_output_amount=minimum,
            slippage_bps=request.slippage_bps,
            price_impact_percent=impact,
            route=tuple(dict(hop) for hop in route if isinstance(hop, dict)),
            provider_id=self.provider_id,
            executable=True,
            price_info=PriceInfo(
                input_price_usd=input_price,
                output_price_usd=output_price,
                effective_rate=out_ui / in_ui,
            ),
            provider_payload=payload,
        )

