"""Typed models used by the swap subsystem."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

BPS_DENOMINATOR = 10_000


class ProviderId(str, Enum):
    """Backend that produced a quote."""

    JUPITER = "jupiter"        # A
    RAYDIUM = "raydium"        # B
    ORCA = "orca"              # C
    DEXSCREENER = "dexscreener"  # D, pool-derived estimate
    FALLBACK = "fallback"      # synthetic, price oracle only


# Providers whose quotes can be turned into a transaction
SWAP_CAPABLE_PROVIDERS: FrozenSet[ProviderId] = frozenset(
    {ProviderId.JUPITER, ProviderId.RAYDIUM, ProviderId.ORCA}
)


def minimum_output_for(amount: int, slippage_bps: int) -> int:
    """Worst-case output after slippage, floored to smallest units."""
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def _to_decimal(value: Any, *, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def _to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass(frozen=True)
class PriceInfo:
    """Display-only pricing attached to a quote. Never used for execution."""

    input_price_usd: Optional[Decimal] = None
    output_price_usd: Optional[Decimal] = None
    effective_rate: Optional[Decimal] = None  # output whole units per input whole unit

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {
            "inputPriceUsd": _to_float(self.input_price_usd),
            "outputPriceUsd": _to_float(self.output_price_usd),
            "effectiveRate": _to_float(self.effective_rate),
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PriceInfo":
        data = data or {}
        return cls(
            input_price_usd=_to_decimal(data.get("inputPriceUsd")),
            output_price_usd=_to_decimal(data.get("outputPriceUsd")),
            effective_rate=_to_decimal(data.get("effectiveRate")),
        )


@dataclass(frozen=True)
class Quote:
    """Normalized quote, identical in shape whichever backend produced it."""

    input_asset: str
    output_asset: str
    input_amount: int                    # smallest units
    output_amount: int                   # smallest units
    minimum_output_amount: int           # output after slippage
    slippage_bps: int
    price_impact_percent: Decimal
    route: Tuple[Dict[str, Any], ...]
    provider_id: ProviderId
    executable: bool
    price_info: PriceInfo = field(default_factory=PriceInfo)
    # Provider-native response, handed back verbatim when building the swap
    provider_payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.input_amount <= 0:
            raise ValueError("input_amount must be positive")
        if self.output_amount < 0 or self.minimum_output_amount < 0:
            raise ValueError("output amounts must be non-negative")
        if self.minimum_output_amount > self.output_amount:
            raise ValueError("minimum_output_amount exceeds output_amount")
        if not 0 <= self.slippage_bps <= BPS_DENOMINATOR:
            raise ValueError("slippage_bps must be between 0 and 10000")
        if self.provider_id is ProviderId.FALLBACK and self.executable:
            raise ValueError("fallback quotes cannot be executable")

    @property
    def is_swap_capable(self) -> bool:
        return self.executable and self.provider_id in SWAP_CAPABLE_PROVIDERS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputAsset": self.input_asset,
            "outputAsset": self.output_asset,
            "inputAmount": str(self.input_amount),
            "outputAmount": str(self.output_amount),
            "minimumOutputAmount": str(self.minimum_output_amount),
            "slippageBps": self.slippage_bps,
            "priceImpactPercent": float(self.price_impact_percent),
            "route": [dict(hop) for hop in self.route],
            "providerId": self.provider_id.value,
            "executable": self.executable,
            "priceInfo": self.price_info.to_dict(),
            "providerPayload": self.provider_payload,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quote":
        """Rebuild a quote submitted back by a client.

        Raises:
            ValueError: missing fields, unknown provider, or broken invariants.
        """
        try:
            provider_id = ProviderId(data["providerId"])
            route = data.get("route") or []
            payload = data.get("providerPayload") or {}
            if not isinstance(payload, dict):
                raise ValueError("providerPayload must be an object")
            return cls(
                input_asset=str(data["inputAsset"]),
                output_asset=str(data["outputAsset"]),
                input_amount=int(data["inputAmount"]),
                output_amount=int(data["outputAmount"]),
                minimum_output_amount=int(data["minimumOutputAmount"]),
                slippage_bps=int(data.get("slippageBps", 0)),
                price_impact_percent=_to_decimal(data.get("priceImpactPercent"), default=Decimal(0)),
                route=tuple(dict(hop) for hop in route),
                provider_id=provider_id,
                executable=data.get("executable") is True,
                price_info=PriceInfo.from_dict(data.get("priceInfo")),
                provider_payload=payload,
            )
        except KeyError as exc:
            raise ValueError(f"quote is missing field {exc.args[0]}") from None
        except TypeError as exc:
            raise ValueError(f"malformed quote: {exc}") from None


@dataclass(frozen=True)
class UnsignedTransaction:
    """Serialized, unsigned transaction ready for the wallet to sign."""

    encoded_transaction: bytes
    provider_id: ProviderId

    @classmethod
    def from_base64(cls, encoded: str, provider_id: ProviderId) -> "UnsignedTransaction":
        return cls(
            encoded_transaction=base64.b64decode(encoded, validate=True),
            provider_id=provider_id,
        )

    @property
    def base64(self) -> str:
        return base64.b64encode(self.encoded_transaction).decode("ascii")

    def to_dict(self) -> Dict[str, str]:
        return {"transaction": self.base64, "providerId": self.provider_id.value}


__all__ = [
    "BPS_DENOMINATOR",
    "ProviderId",
    "SWAP_CAPABLE_PROVIDERS",
    "PriceInfo",
    "Quote",
    "UnsignedTransaction",
    "minimum_output_for",
]
