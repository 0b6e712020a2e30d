"""Preflight Check — one transient readiness orchestrator per deployment flow.

Invariants:
    - Built fresh each time the flow is entered; nothing persists across flows
    - get_readiness_state() is a synchronous snapshot; subscribe() streams changes
    - submit() is the only forward action and requires all_ready
    - Nothing raised by a collaborator escapes a readiness computation

Design Decisions:
    - Facade wires WalletTracker -> {BalanceProbe, CertificateRegistry} and
      ManifestValidator -> ReadinessAggregator explicitly (ADR: no auto-discovery)
    - Collaborators injected, never constructed here (ADR: functional core, thin shell)
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from preflight.core.certificate_match import LocalCertificate
from preflight.core.check_reports import CheckReport, build_check_reports
from preflight.core.collaborator_protocols import (
    BalanceFetcher, CertificateBroadcaster, CertificateQuery,
    ManifestDeriver, WalletProvider,
)
from preflight.core.domain_types import (
    Address, IssuanceStatus, MIN_FUNDING_DISPLAY, PreflightId,
    TLS_CERTIFICATE_KIND,
)
from preflight.core.errors import ErrorContext, GateNotSatisfiedError
from preflight.core.readiness import ReadinessState
from preflight.services.balance_probe import BalanceProbe
from preflight.services.certificate_issuer import CertificateIssuer
from preflight.services.certificate_registry import CertificateRegistry
from preflight.services.manifest_validator import ManifestValidator
from preflight.services.readiness_aggregator import ReadinessAggregator
from preflight.services.task_tracker import TaskTracker
from preflight.services.wallet_tracker import WalletTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionTicket:
    """What the next deployment step needs once the gate opens."""
    address: Address
    manifest_fingerprint: str


class PreflightCheck:
    """Tracks the 4 readiness checks and gates the forward action on them."""

    def __init__(
        self,
        *,
        wallet: WalletProvider,
        balances: BalanceFetcher,
        manifests: ManifestDeriver,
        certificates: CertificateQuery,
        broadcaster: CertificateBroadcaster,
        rpc_endpoint: str,
        local_certificate: LocalCertificate | None = None,
        min_funding: Decimal = MIN_FUNDING_DISPLAY,
        certificate_kind: str = TLS_CERTIFICATE_KIND,
        preflight_id: PreflightId | None = None,
    ):
        self.id = preflight_id or PreflightId(uuid.uuid4().hex)
        self.tasks = TaskTracker(owner=f"preflight-{self.id[:8]}")
        self.wallet = WalletTracker(wallet, self.tasks)
        self.balance = BalanceProbe(
            balances, self.wallet.session, self.tasks, min_funding,
        )
        self.manifest = ManifestValidator(manifests, self.tasks)
        self.registry = CertificateRegistry(
            certificates, self.wallet.session, self.tasks,
            local=local_certificate, expected_kind=certificate_kind,
        )
        self.issuer = CertificateIssuer(
            broadcaster, self.wallet.session, self.registry, self.tasks,
            rpc_endpoint,
        )
        self.aggregator = ReadinessAggregator(
            wallet=self.wallet.ready,
            wallet_status=self.wallet.status,
            funds=self.balance.ready,
            spec=self.manifest.ready,
            certificate=self.registry.ready,
            certificate_issuing=self.issuer.in_flight,
        )
        self._started = False

    # ─── Lifecycle ───────────────────────────────────────────────

    def start(self, spec: Any = None) -> None:
        """Enter the flow: connect wallet, kick off fetches, validate the spec."""
        if self._started:
            return
        self._started = True
        logger.info("Preflight flow started", extra={"preflight_id": self.id})
        self.balance.start()
        self.registry.start()
        self.manifest.update_spec(spec)
        self.wallet.start()

    async def settle(self) -> None:
        """Wait for every outstanding fetch (tests, graceful shutdown)."""
        await self.tasks.settle()

    def close(self) -> None:
        """Leave the flow: detach subscriptions and cancel outstanding fetches."""
        self.aggregator.close()
        self.registry.close()
        self.balance.close()
        self.wallet.close()
        self.tasks.cancel_all()
        logger.info("Preflight flow closed", extra={"preflight_id": self.id})

    # ─── Consumer interface ──────────────────────────────────────

    def get_readiness_state(self) -> ReadinessState:
        return self.aggregator.state.value

    def subscribe(
        self, listener: Callable[[ReadinessState], None],
    ) -> Callable[[], None]:
        return self.aggregator.state.subscribe(listener)

    def check_reports(self) -> list[CheckReport]:
        return build_check_reports(
            self.get_readiness_state(),
            self.balance.display_balance,
            self.balance.minimum,
        )

    # ─── Inputs ──────────────────────────────────────────────────

    def update_spec(self, spec: Any) -> None:
        self.manifest.update_spec(spec)

    def set_local_certificate(self, certificate: LocalCertificate | None) -> None:
        self.registry.set_local_certificate(certificate)

    def request_wallet_connection(self) -> bool:
        return self.wallet.request_connection()

    def request_certificate_issuance(self) -> IssuanceStatus:
        return self.issuer.request_issuance()

    async def issue_certificate(self) -> IssuanceStatus:
        return await self.issuer.issue()

    def refresh(self) -> None:
        """Re-query balance and certificates for the current address."""
        self.balance.refresh()
        self.registry.refresh()

    # ─── Gated forward action ────────────────────────────────────

    def submit(self) -> SubmissionTicket:
        """Proceed to deployment. Raises GateNotSatisfiedError unless all_ready."""
        state = self.get_readiness_state()
        address = self.wallet.session.value.active_address
        fingerprint = self.manifest.fingerprint
        if not state.all_ready or address is None or fingerprint is None:
            raise GateNotSatisfiedError(
                state.missing_checks,
                ErrorContext(preflight_id=self.id, address=address),
            )
        logger.info(
            "Preflight gate passed",
            extra={"preflight_id": self.id, "address": address},
        )
        return SubmissionTicket(address, fingerprint.hex())

    def snapshot(self) -> dict:
        """JSON-safe view for API responses and SSE events."""
        state = self.get_readiness_state()
        balance = self.balance.display_balance
        issuance_error = self.issuer.last_error
        return {
            "id": self.id,
            "all_ready": state.all_ready,
            "wallet_ready": state.wallet_ready,
            "funds_ready": state.funds_ready,
            "spec_ready": state.spec_ready,
            "cert_ready": state.cert_ready,
            "certificate_issuing": state.certificate_issuing,
            "wallet_status": state.wallet_status.value,
            "checks": [report.to_dict() for report in self.check_reports()],
            "address": self.wallet.session.value.active_address,
            "balance": str(balance) if balance is not None else None,
            "min_funding": str(self.balance.minimum),
            "manifest_fingerprint": (
                self.manifest.fingerprint.hex() if self.manifest.fingerprint else None
            ),
            "issuance": {
                "status": self.issuer.status.value,
                "error": issuance_error.to_sse_event()["data"] if issuance_error else None,
            },
        }
