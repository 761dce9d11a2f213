"""Shared fixtures for the swap test-suite."""

from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from gaia.core.swap.tokens import NATIVE_MINT, USDC_MINT


class StubOracle:
    """Price oracle double with fixed prices and a call counter."""

    def __init__(self, prices: Dict[str, Optional[Decimal]]):
        self.prices = prices
        self.calls: List[str] = []

    async def get_usd_price(self, asset: str) -> Optional[Decimal]:
        self.calls.append(asset)
        return self.prices.get(asset)

    async def get_usd_prices(self, input_asset: str, output_asset: str):
        return await self.get_usd_price(input_asset), await self.get_usd_price(output_asset)


@pytest.fixture
def sol_usdc_oracle() -> StubOracle:
    return StubOracle({NATIVE_MINT: Decimal("135.0"), USDC_MINT: Decimal("1.0")})


@pytest.fixture
def stub_oracle() -> Callable[[Dict[str, Optional[Decimal]]], StubOracle]:
    return StubOracle


@pytest.fixture
def recording_transport() -> Callable[..., Tuple[httpx.MockTransport, List[httpx.Request]]]:
    """Wrap a request handler in a MockTransport that records every request."""

    def factory(handler):
        calls: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return handler(request)

        return httpx.MockTransport(record), calls

    return factory
