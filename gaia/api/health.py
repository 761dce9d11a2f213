import asyncio
from typing import Any, Dict

from fastapi import APIRouter

from ..config import settings
from ..core.swap.builder import get_swap_builder
from ..core.swap.pricing import get_price_oracle

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint that verifies upstream provider status"""

    oracle = get_price_oracle()
    providers = {
        "coingecko": oracle.coingecko,
        "dexscreener": oracle.dexscreener,
        **{builder.name: builder for builder in get_swap_builder().builders},
    }

    results = await asyncio.gather(*(provider.health_check() for provider in providers.values()))
    provider_status = dict(zip(providers.keys(), results))

    available_providers = sum(
        1 for status in provider_status.values()
        if status["status"] == "healthy"
    )

    if available_providers == len(provider_status):
        status = "healthy"
    elif available_providers:
        status = "degraded"
    else:
        status = "down"

    return {
        "status": status,
        "providers": provider_status,
        "available_providers": available_providers,
        "total_providers": len(provider_status),
        "enabled": settings.enabled_providers(),
        "coingecko_key_configured": settings.has_coingecko_key,
    }
