from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, Field

from ..config import settings
from ..core.swap.builder import SwapTransactionBuilder, get_swap_builder
from ..core.swap.errors import InvalidQuoteRequest
from ..core.swap.models import Quote
from ..core.swap.quoting import QuoteService, get_quote_service

router = APIRouter()


class SwapRequest(BaseModel):
    quote: Dict[str, Any] = Field(
        validation_alias=AliasChoices("quote", "quoteResponse"),
        description="Quote exactly as returned by GET /quote",
    )
    wallet_identity: str = Field(
        min_length=1,
        validation_alias=AliasChoices("walletIdentity", "userPublicKey"),
        description="Base58 public key that will sign the transaction",
    )


class SwapResponse(BaseModel):
    transaction: str = Field(description="Base64 encoded unsigned transaction")
    providerId: str


@router.get("/quote")
async def get_quote(
    input_asset: str = Query(alias="inputAsset", description="Input token mint"),
    output_asset: str = Query(alias="outputAsset", description="Output token mint"),
    amount: int = Query(description="Input amount in smallest units"),
    slippage_bps: Optional[int] = Query(default=None, alias="slippageBps"),
    service: QuoteService = Depends(get_quote_service),
) -> Dict[str, Any]:
    """Best available quote; a ``fallback`` quote is an estimate and not executable."""
    quote = await service.get_quote(
        input_asset=input_asset,
        output_asset=output_asset,
        amount=amount,
        slippage_bps=settings.default_slippage_bps if slippage_bps is None else slippage_bps,
    )
    return quote.to_dict()


@router.post("/swap", response_model=SwapResponse)
async def post_swap(
    req: SwapRequest,
    builder: SwapTransactionBuilder = Depends(get_swap_builder),
) -> Dict[str, str]:
    try:
        quote = Quote.from_dict(req.quote)
    except ValueError as exc:
        raise InvalidQuoteRequest(f"Invalid quote: {exc}") from None
    transaction = await builder.build_transaction(quote, req.wallet_identity)
    return transaction.to_dict()
