from pathlib import Path
from typing import Any, Dict, List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # External API Keys
    coingecko_api_key: str = Field(
        default="",
        description="Coingecko API key",
        validation_alias=AliasChoices("coingecko_api_key", "cg_api_key", "COINGECKO_DEMO_API_KEY"),
    )

    # Upstream endpoints
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Coingecko REST base URL",
    )
    dexscreener_base_url: str = Field(
        default="https://api.dexscreener.com",
        description="DexScreener REST base URL",
    )
    jupiter_quote_urls: List[str] = Field(
        default_factory=lambda: [
            "https://quote-api.jup.ag/v6",
            "https://lite-api.jup.ag/v6",
        ],
        description="Equivalent Jupiter v6 hosts, tried in order",
    )
    raydium_base_url: str = Field(
        default="https://api-v3.raydium.io",
        description="Raydium trade API base URL",
    )
    orca_base_url: str = Field(
        default="https://api.orca.so/v1",
        description="Orca quote/swap API base URL",
    )
    target_chain: str = Field(default="solana", description="DexScreener chainId to keep")

    # Timeouts (seconds)
    price_timeout_seconds: float = Field(default=3.0, gt=0, description="Price oracle request timeout")
    quote_timeout_seconds: float = Field(default=5.0, gt=0, description="Per-provider quote timeout")
    build_timeout_seconds: float = Field(default=15.0, gt=0, description="Swap transaction build timeout")

    # Provider Toggles
    enable_jupiter: bool = Field(default=True, description="Enable Jupiter quotes and swaps")
    enable_raydium: bool = Field(default=True, description="Enable Raydium quotes and swaps")
    enable_orca: bool = Field(default=True, description="Enable Orca quotes and swaps")
    enable_dexscreener_quotes: bool = Field(
        default=True,
        description="Enable pool-derived estimates from DexScreener prices",
    )

    # Swap defaults
    default_slippage_bps: int = Field(default=50, ge=0, le=10_000, description="Slippage when none is given")

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)

    def enabled_providers(self) -> Dict[str, Any]:
        return {
            "jupiter": self.enable_jupiter,
            "raydium": self.enable_raydium,
            "orca": self.enable_orca,
            "dexscreener": self.enable_dexscreener_quotes,
        }


# Global settings instance
settings = Settings()
