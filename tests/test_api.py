"""
HTTP surface tests: status codes and bodies for /quote, /swap, /price, /tokens/search and /healthz.
"""

import base64
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from gaia.api import health
from gaia.config import settings
from gaia.core.swap.builder import SwapTransactionBuilder, get_swap_builder
from gaia.core.swap.errors import BuildFailed, NoQuoteAvailable, PriceUnavailable
from gaia.core.swap.models import PriceInfo, ProviderId, Quote, UnsignedTransaction
from gaia.core.swap.pricing import get_price_oracle
from gaia.core.swap.quoting import QuoteService, get_quote_service
from gaia.core.swap.tokens import NATIVE_MINT, USDC_MINT
from gaia.main import app

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


def jupiter_quote() -> Quote:
    return Quote(
        input_asset=NATIVE_MINT,
        output_asset=USDC_MINT,
        input_amount=1_000_000_000,
        output_amount=135_000_000,
        minimum_output_amount=134_325_000,
        slippage_bps=50,
        price_impact_percent=Decimal("0"),
        route=({"ammKey": "whirlpool-1"},),
        provider_id=ProviderId.JUPITER,
        executable=True,
        price_info=PriceInfo(Decimal("135"), Decimal("1"), Decimal("135")),
        provider_payload={"outAmount": "135000000"},
    )


def fallback_quote() -> Quote:
    return Quote(
        input_asset=NATIVE_MINT,
        output_asset=USDC_MINT,
        input_amount=1_000_000_000,
        output_amount=134_325_000,
        minimum_output_amount=133_653_375,
        slippage_bps=50,
        price_impact_percent=Decimal("0.5"),
        route=(),
        provider_id=ProviderId.FALLBACK,
        executable=False,
    )


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def quote_service():
    service = MagicMock()
    service.get_quote = AsyncMock(return_value=jupiter_quote())
    app.dependency_overrides[get_quote_service] = lambda: service
    return service


@pytest.fixture
def builder_mock():
    builder = MagicMock()
    builder.provider_id = ProviderId.JUPITER
    builder.name = "jupiter"
    builder.build_transaction = AsyncMock(
        return_value=UnsignedTransaction(b"unsigned", ProviderId.JUPITER)
    )
    app.dependency_overrides[get_swap_builder] = lambda: SwapTransactionBuilder([builder])
    return builder


class TestQuoteEndpoint:
    def test_returns_normalized_quote(self, client, quote_service):
        response = client.get(
            "/quote",
            params={"inputAsset": NATIVE_MINT, "outputAsset": USDC_MINT, "amount": 1_000_000_000, "slippageBps": 50},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["providerId"] == "jupiter"
        assert data["outputAmount"] == "135000000"
        assert data["minimumOutputAmount"] == "134325000"
        assert data["executable"] is True
        assert data["priceInfo"]["effectiveRate"] == 135.0

    def test_default_slippage(self, client, quote_service):
        client.get("/quote", params={"inputAsset": NATIVE_MINT, "outputAsset": USDC_MINT, "amount": 1000})

        quote_service.get_quote.assert_awaited_once_with(
            input_asset=NATIVE_MINT,
            output_asset=USDC_MINT,
            amount=1000,
            slippage_bps=50,
        )

    def test_fallback_quote_is_served_as_estimate(self, client, quote_service):
        quote_service.get_quote.return_value = fallback_quote()

        response = client.get("/quote", params={"inputAsset": NATIVE_MINT, "outputAsset": USDC_MINT, "amount": 1_000_000_000})

        assert response.status_code == 200
        assert response.json()["providerId"] == "fallback"
        assert response.json()["executable"] is False
        assert response.json()["route"] == []

    def test_no_quote_available_is_503(self, client, quote_service):
        quote_service.get_quote.side_effect = NoQuoteAvailable()

        response = client.get("/quote", params={"inputAsset": NATIVE_MINT, "outputAsset": USDC_MINT, "amount": 1000})

        assert response.status_code == 503
        assert response.json()["code"] == "NO_QUOTE_AVAILABLE"
        assert "network" in response.json()["error"]

    def test_invalid_amount_is_400(self, client):
        app.dependency_overrides[get_quote_service] = lambda: QuoteService([], synthesizer=None)

        response = client.get("/quote", params={"inputAsset": NATIVE_MINT, "outputAsset": USDC_MINT, "amount": 0})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    def test_missing_parameters_is_422(self, client, quote_service):
        response = client.get("/quote", params={"inputAsset": NATIVE_MINT})

        assert response.status_code == 422
        quote_service.get_quote.assert_not_awaited()


class TestSwapEndpoint:
    def test_builds_transaction(self, client, builder_mock):
        response = client.post(
            "/swap",
            json={"quote": jupiter_quote().to_dict(), "walletIdentity": WALLET},
        )

        assert response.status_code == 200
        assert response.json() == {
            "transaction": base64.b64encode(b"unsigned").decode(),
            "providerId": "jupiter",
        }
        args = builder_mock.build_transaction.await_args.args
        assert args[0] == jupiter_quote()
        assert args[1] == WALLET

    def test_accepts_legacy_field_names(self, client, builder_mock):
        response = client.post(
            "/swap",
            json={"quoteResponse": jupiter_quote().to_dict(), "userPublicKey": WALLET},
        )

        assert response.status_code == 200

    def test_fallback_quote_is_rejected_before_any_build(self, client, builder_mock):
        response = client.post(
            "/swap",
            json={"quote": fallback_quote().to_dict(), "walletIdentity": WALLET},
        )

        assert response.status_code == 503
        assert response.json()["code"] == "DEX_UNAVAILABLE"
        builder_mock.build_transaction.assert_not_awaited()

    def test_fallback_quote_with_string_flag_is_still_an_estimate(self, client, builder_mock):
        quote = fallback_quote().to_dict()
        quote["executable"] = "false"

        response = client.post("/swap", json={"quote": quote, "walletIdentity": WALLET})

        assert response.status_code == 503
        assert response.json()["code"] == "DEX_UNAVAILABLE"
        builder_mock.build_transaction.assert_not_awaited()

    def test_build_failure_is_503(self, client, builder_mock):
        builder_mock.build_transaction.side_effect = BuildFailed()

        response = client.post(
            "/swap",
            json={"quote": jupiter_quote().to_dict(), "walletIdentity": WALLET},
        )

        assert response.status_code == 503
        assert response.json()["code"] == "BUILD_FAILED"

    def test_malformed_quote_is_400(self, client, builder_mock):
        quote = jupiter_quote().to_dict()
        quote["minimumOutputAmount"] = "999999999999"

        response = client.post("/swap", json={"quote": quote, "walletIdentity": WALLET})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"
        builder_mock.build_transaction.assert_not_awaited()

    def test_missing_wallet_is_422(self, client, builder_mock):
        response = client.post("/swap", json={"quote": jupiter_quote().to_dict()})

        assert response.status_code == 422


class TestPriceEndpoint:
    def test_known_price(self, client):
        oracle = MagicMock()
        oracle.require_usd_price = AsyncMock(return_value=Decimal("135.5"))
        app.dependency_overrides[get_price_oracle] = lambda: oracle

        response = client.get(f"/price/{NATIVE_MINT}")

        assert response.status_code == 200
        assert response.json() == {"asset": NATIVE_MINT, "priceUsd": 135.5, "decimals": 9}

    def test_missing_price_is_404(self, client):
        oracle = MagicMock()
        oracle.require_usd_price = AsyncMock(side_effect=PriceUnavailable("UnknownMint"))
        app.dependency_overrides[get_price_oracle] = lambda: oracle

        response = client.get("/price/UnknownMint")

        assert response.status_code == 404
        assert response.json()["code"] == "PRICE_UNAVAILABLE"

    def test_sol_market(self, client):
        oracle = MagicMock()
        oracle.coingecko.get_native_market = AsyncMock(return_value={
            "price_usd": 135.0,
            "change_24h": -2.1,
            "volume_24h": 1_000_000,
            "market_cap": 60_000_000_000,
        })
        app.dependency_overrides[get_price_oracle] = lambda: oracle

        response = client.get("/market/sol")

        assert response.status_code == 200
        assert response.json()["price"] == 135.0
        assert response.json()["change24h"] == -2.1


@pytest.fixture
def search_oracle():
    oracle = MagicMock()
    oracle.dexscreener.search = AsyncMock(return_value=[])
    app.dependency_overrides[get_price_oracle] = lambda: oracle
    return oracle


class TestTokenSearch:
    def test_maps_pairs_to_results(self, client, search_oracle):
        search_oracle.dexscreener.search.return_value = [
            {
                "chainId": "solana",
                "dexId": "raydium",
                "baseToken": {"address": "BonkMint", "name": "Bonk", "symbol": "BONK"},
                "priceUsd": "0.00002",
                "priceChange": {"h24": 4.2},
                "volume": {"h24": 1_500_000},
                "liquidity": {"usd": 800_000},
                "fdv": 1_200_000_000,
            },
            {
                "chainId": "solana",
                "dexId": "orca",
                "baseToken": {"address": "NewMint", "name": "New", "symbol": "NEW"},
                "priceUsd": "0.5",
            },
        ]

        response = client.get("/tokens/search", params={"q": " bonk "})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["results"][0] == {
            "token": {"address": "BonkMint", "name": "Bonk", "symbol": "BONK"},
            "priceUsd": "0.00002",
            "priceChange24h": 4.2,
            "volume24h": 1_500_000,
            "liquidity": 800_000,
            "fdv": 1_200_000_000,
            "dexId": "raydium",
        }
        assert data["results"][1]["volume24h"] == 0
        assert data["results"][1]["fdv"] == 0
        search_oracle.dexscreener.search.assert_awaited_once_with("bonk")

    def test_caps_results_at_twenty(self, client, search_oracle):
        search_oracle.dexscreener.search.return_value = [
            {"chainId": "solana", "baseToken": {"address": f"Mint{i}"}} for i in range(30)
        ]

        response = client.get("/tokens/search", params={"q": "mint"})

        assert response.json()["total"] == 20
        assert response.json()["results"][-1]["token"]["address"] == "Mint19"

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_blank_query_is_400(self, client, search_oracle, params):
        response = client.get("/tokens/search", params=params)

        assert response.status_code == 400
        assert response.json()["detail"] == "Search query is required"
        search_oracle.dexscreener.search.assert_not_awaited()

    def test_upstream_failure_is_502(self, client, search_oracle):
        search_oracle.dexscreener.search.side_effect = httpx.ConnectError("dns failure")

        response = client.get("/tokens/search", params={"q": "bonk"})

        assert response.status_code == 502

def _provider_reporting(status):
    provider = MagicMock()
    provider.health_check = AsyncMock(return_value={"status": status})
    return provider


def test_healthz_reports_degraded(client, monkeypatch):
    oracle = MagicMock()
    oracle.coingecko = _provider_reporting("healthy")
    oracle.dexscreener = _provider_reporting("healthy")
    jupiter = _provider_reporting("error")
    jupiter.name = "jupiter"
    builder = MagicMock()
    builder.builders = [jupiter]
    monkeypatch.setattr(health, "get_price_oracle", lambda: oracle)
    monkeypatch.setattr(health, "get_swap_builder", lambda: builder)
    monkeypatch.setattr(settings, "enable_orca", False)
    monkeypatch.setattr(settings, "coingecko_api_key", "demo-key")

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["available_providers"] == 2
    assert response.json()["total_providers"] == 3
    assert response.json()["enabled"] == {
        "jupiter": True,
        "raydium": True,
        "orca": False,
        "dexscreener": True,
    }
    assert response.json()["coingecko_key_configured"] is True


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/healthz"
