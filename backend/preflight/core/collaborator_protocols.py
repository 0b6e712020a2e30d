"""Boundary Protocols — contracts between the readiness core and its collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell (infrastructure/, tests) via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE their results are never async themselves —
      the services layer orchestrates the async calls around the pure logic
"""

from typing import Any, Callable, Protocol

from preflight.core.certificate_match import RemoteCertificate
from preflight.core.domain_types import Address
from preflight.core.funding import BalanceSnapshot
from preflight.core.issuance import IssuanceResponse
from preflight.core.wallet_session import WalletSession

WalletListener = Callable[[WalletSession], None]
Unsubscribe = Callable[[], None]


class WalletProvider(Protocol):
    """Wallet extension contract. connect() is idempotent once connected."""
    extension_present: bool

    async def connect(self) -> None: ...
    def current_session(self) -> WalletSession: ...
    def subscribe(self, listener: WalletListener) -> Unsubscribe: ...


class BalanceFetcher(Protocol):
    """Account balance lookup. May raise; retry policy lives in the implementation."""
    async def fetch_balance(self, address: Address) -> BalanceSnapshot: ...


class ManifestDeriver(Protocol):
    """Workload spec -> manifest fingerprint. Raises for a malformed spec."""
    async def derive_fingerprint(self, spec: Any) -> bytes | None: ...


class CertificateQuery(Protocol):
    """Known certificates for an account. May return an empty list."""
    async def query_certificates(self, address: Address) -> list[RemoteCertificate]: ...


class CertificateBroadcaster(Protocol):
    """Create + broadcast a new certificate for the signed-in account."""
    async def issue_certificate(
        self, endpoint: str, session: WalletSession,
    ) -> IssuanceResponse: ...
