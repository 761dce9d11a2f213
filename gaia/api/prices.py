from typing import Any, Dict

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.swap.pricing import PriceOracle, get_price_oracle
from ..core.swap.tokens import get_decimals

router = APIRouter()

MAX_SEARCH_RESULTS = 20


@router.get("/price/{asset}")
async def get_price(asset: str, oracle: PriceOracle = Depends(get_price_oracle)) -> Dict[str, Any]:
    """USD unit price for a mint, as the quote engine sees it."""
    price = await oracle.require_usd_price(asset)
    return {
        "asset": asset,
        "priceUsd": float(price),
        "decimals": get_decimals(asset),
    }


@router.get("/market/sol")
async def get_sol_market(oracle: PriceOracle = Depends(get_price_oracle)) -> Dict[str, Any]:
    try:
        market = await oracle.coingecko.get_native_market()
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to fetch SOL price: {exc}")
    if not market:
        raise HTTPException(status_code=502, detail="Failed to fetch SOL price")
    return {
        "price": market["price_usd"],
        "change24h": market.get("change_24h"),
        "volume24h": market.get("volume_24h"),
        "marketCap": market.get("market_cap"),
    }


def _search_result(pair: Dict[str, Any]) -> Dict[str, Any]:
    base = pair.get("baseToken") or {}
    return {
        "token": {
            "address": base.get("address"),
            "name": base.get("name"),
            "symbol": base.get("symbol"),
        },
        "priceUsd": pair.get("priceUsd"),
        "priceChange24h": (pair.get("priceChange") or {}).get("h24") or 0,
        "volume24h": (pair.get("volume") or {}).get("h24") or 0,
        "liquidity": (pair.get("liquidity") or {}).get("usd") or 0,
        "fdv": pair.get("fdv") or 0,
        "dexId": pair.get("dexId"),
    }


@router.get("/tokens/search")
async def search_tokens(
    q: str = Query(default=""),
    oracle: PriceOracle = Depends(get_price_oracle),
) -> Dict[str, Any]:
    """Token lookup by name, symbol or mint via DexScreener pairs on the target chain."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    try:
        pairs = await oracle.dexscreener.search(q.strip())
    except (httpx.HTTPError, ValueError) as exc:
        raise HTTPException(status_code=502, detail=f"Failed to search tokens: {exc}")

    results = [_search_result(pair) for pair in pairs[:MAX_SEARCH_RESULTS]]
    return {"results": results, "total": len(results)}
