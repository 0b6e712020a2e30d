"""Preflight Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - WalletSessionUpdate enforces signed_in => connected => address before core sees it
    - SDL text bounded to 100_000 chars; certificate public key to 10_000
    - Responses mirror PreflightCheck.snapshot() — the core owns the payload shape

Design Decisions:
    - model_validator for cross-field invariants, raising a dedicated error type so the
      API reports INVALID_WALLET_SESSION instead of a generic field dump
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from preflight.core.domain_types import TLS_CERTIFICATE_KIND

# Error type reported for wallet sessions that break signed_in => connected => address
WALLET_SESSION_ERROR = "wallet_session"


class WalletSessionUpdate(BaseModel):
    """Wallet state as reported by the browser extension."""
    connected: bool = False
    signed_in: bool = False
    address: str | None = Field(None, min_length=1, max_length=128)

    @model_validator(mode="after")
    def check_session_invariant(self) -> "WalletSessionUpdate":
        if self.signed_in and not self.connected:
            raise PydanticCustomError(WALLET_SESSION_ERROR, "signed_in requires connected")
        if self.connected and not self.address:
            raise PydanticCustomError(WALLET_SESSION_ERROR, "connected requires an address")
        return self


class LocalCertificateUpdate(BaseModel):
    """Locally held certificate (public key PEM + credential kind)."""
    public_key: str = Field(min_length=1, max_length=10_000)
    kind: str = Field(TLS_CERTIFICATE_KIND, max_length=64)


class SpecUpdate(BaseModel):
    """Workload spec (SDL text)."""
    sdl: str = Field(max_length=100_000)

    @field_validator("sdl")
    @classmethod
    def strip_sdl(cls, v: str) -> str:
        return v.strip()


class PreflightCreate(BaseModel):
    """Flow creation — extension detection plus optional initial inputs."""
    extension_present: bool
    wallet: WalletSessionUpdate | None = None
    sdl: str | None = Field(None, max_length=100_000)
    certificate: LocalCertificateUpdate | None = None


class CheckReportResponse(BaseModel):
    check: str
    status: str
    title: str
    detail: str | None = None
    action: str | None = None


class IssuanceInfo(BaseModel):
    status: str
    error: dict | None = None


class ReadinessResponse(BaseModel):
    """Readiness snapshot — aggregate, per-check flags, and display reports."""
    id: str
    all_ready: bool
    wallet_ready: bool
    funds_ready: bool
    spec_ready: bool
    cert_ready: bool
    certificate_issuing: bool
    wallet_status: str
    connect_requested: bool = False
    checks: list[CheckReportResponse]
    address: str | None = None
    balance: str | None = None
    min_funding: str
    manifest_fingerprint: str | None = None
    issuance: IssuanceInfo


class SubmissionResponse(BaseModel):
    address: str
    manifest_fingerprint: str
