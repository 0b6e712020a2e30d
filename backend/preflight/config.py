"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All endpoints and thresholds come from environment variables or .env
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults target a public Akash mainnet REST node: works out-of-the-box for development
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Chain REST (LCD): balances and certificate registry
    chain_rest_url: str = "https://api.akashnet.net"
    chain_max_retries: int = 3
    chain_timeout_seconds: int = 15
    chain_base_delay_ms: int = 500
    chain_max_delay_ms: int = 10_000

    @field_validator("chain_rest_url", "certificate_broadcast_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # Certificate issuance (signing relay that owns the wallet-side broadcast)
    rpc_endpoint: str = "https://rpc.akashnet.net:443"
    certificate_broadcast_url: str = "http://localhost:8787/certificates"

    # Readiness policy (balances are always read in uakt, shown in AKT)
    min_funding_display: Decimal = Decimal("5")
    certificate_kind: str = "TLS Certificate"

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Flows abandoned without DELETE are discarded after this much inactivity
    flow_idle_timeout_seconds: int = 1800
    flow_sweep_interval_seconds: int = 60

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
