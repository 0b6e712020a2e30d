"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Address wraps the bech32 account string — never pass raw str through services
    - ManifestFingerprint is raw digest bytes; absence (None) means spec invalid
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: API + SSE payloads are JSON)
"""

from decimal import Decimal
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Address = NewType("Address", str)
PreflightId = NewType("PreflightId", str)


# ─── Value Types ─────────────────────────────────────────────────

ManifestFingerprint = NewType("ManifestFingerprint", bytes)


# ─── Constants ───────────────────────────────────────────────────

BASE_UNITS_PER_DISPLAY_UNIT = 1_000_000   # uakt -> AKT
BASE_DENOM = "uakt"
DISPLAY_DENOM = "AKT"
MIN_FUNDING_DISPLAY = Decimal("5")
TLS_CERTIFICATE_KIND = "TLS Certificate"
BROADCAST_SUCCESS_CODE = 0


# ─── Enums ───────────────────────────────────────────────────────

class CertificateState(str, Enum):
    """Registry-assigned trust state. Only VALID satisfies readiness."""
    VALID = "valid"
    REVOKED = "revoked"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> "CertificateState":
        """Map chain representations (name or enum number) to a state."""
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            for state in cls:
                if state.value == normalized:
                    return state
            return cls.UNKNOWN
        # akash.cert Certificate_State: 0=invalid, 1=valid, 2=revoked
        if raw == 1:
            return cls.VALID
        if raw == 2:
            return cls.REVOKED
        return cls.UNKNOWN


class CheckName(str, Enum):
    """The 4 readiness checks. All must be satisfied before submission."""
    WALLET = "wallet"
    FUNDS = "funds"
    SPEC = "spec"
    CERTIFICATE = "certificate"


class CheckStatus(str, Enum):
    """Per-check state machine: UNKNOWN -> {SATISFIED, UNSATISFIED}, IN_PROGRESS during issuance."""
    UNKNOWN = "unknown"
    SATISFIED = "satisfied"
    UNSATISFIED = "unsatisfied"
    IN_PROGRESS = "in_progress"


class WalletStatus(str, Enum):
    """Finer-grained wallet state — extension_missing is NOT the same as disconnected."""
    EXTENSION_MISSING = "extension_missing"
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SIGNED_IN = "signed_in"


class IssuanceStatus(str, Enum):
    """Outcome of the most recent certificate issuance request."""
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RemedialAction(str, Enum):
    """What the user can do to move an unsatisfied check forward."""
    INSTALL_EXTENSION = "install_extension"
    CONNECT_WALLET = "connect_wallet"
    ADD_FUNDS = "add_funds"
    FIX_SPEC = "fix_spec"
    CREATE_CERTIFICATE = "create_certificate"
