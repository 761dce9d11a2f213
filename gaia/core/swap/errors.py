"""
Swap error taxonomy.

Every failure in the quote/swap core is one of these. Per-provider failures
(``ProviderUnavailable``, ``PriceUnavailable``) only advance the provider
chain; the rest surface to the HTTP layer, which renders ``code`` and
``http_status`` as-is.
"""

from typing import Optional


class SwapError(Exception):
    """Base class for quote/swap failures."""

    code: str = "SWAP_ERROR"
    http_status: int = 500

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class PriceUnavailable(SwapError):
    """The price oracle had no data for an asset."""

    code = "PRICE_UNAVAILABLE"
    http_status = 404

    def __init__(self, asset: str, message: Optional[str] = None):
        super().__init__(message or f"No USD price available for {asset}")
        self.asset = asset


class NoPriceData(PriceUnavailable):
    """Fallback synthesis could not price one of the two assets."""


class ProviderUnavailable(SwapError):
    """A single quote/build backend failed; the chain moves on."""

    code = "PROVIDER_UNAVAILABLE"
    http_status = 503

    def __init__(self, provider_id: str, reason: str):
        super().__init__(f"{provider_id}: {reason}")
        self.provider_id = provider_id
        self.reason = reason


class NoQuoteAvailable(SwapError):
    """Every provider and the fallback synthesizer failed."""

    code = "NO_QUOTE_AVAILABLE"
    http_status = 503

    def __init__(self, message: str = "Unable to get swap quote. Please check your network connection."):
        super().__init__(message)


class NotExecutable(SwapError):
    """A display-only quote was submitted for transaction building."""

    code = "DEX_UNAVAILABLE"
    http_status = 503

    def __init__(
        self,
        message: str = (
            "DEX APIs are currently unavailable from your network. "
            "This quote is an estimate and cannot be executed."
        ),
    ):
        super().__init__(message)


class BuildFailed(SwapError):
    """No provider could build a transaction for the quote."""

    code = "BUILD_FAILED"
    http_status = 503

    def __init__(self, message: str = "Unable to build swap transaction. DEX services may be unavailable."):
        super().__init__(message)


class InvalidQuoteRequest(SwapError):
    """Quote parameters or a submitted quote failed validation."""

    code = "INVALID_REQUEST"
    http_status = 400
