"""Certificate Registry — matches the local certificate against the account's registry entries.

Invariants:
    - cert_ready recomputed on every change to the local candidate, the remote list,
      the signed-in address, or the issuance override
    - Address change drops the previous account's remote list before re-querying
    - Query results tagged (address, generation); stale results are discarded
    - Query failure degrades to an empty remote list (not ready), never raises
    - Issued override is never auto-cleared within a flow; it only applies while the
      wallet holds the issuing address (signed in or merely connected) and the local
      candidate still has the issued public key

Design Decisions:
    - Without a signed-in address there is nothing to match against: treated as an
      empty remote list (False), not UNKNOWN
"""

import logging

from preflight.core.certificate_match import (
    IssuedOverride, LocalCertificate, RemoteCertificate,
    certificate_ready, find_matching_certificate,
)
from preflight.core.collaborator_protocols import CertificateQuery
from preflight.core.domain_types import Address, TLS_CERTIFICATE_KIND
from preflight.core.wallet_session import WalletSession
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


class CertificateRegistry:
    """Publishes cert_ready for the local candidate and current account."""

    def __init__(
        self,
        query: CertificateQuery,
        wallet_session: Signal[WalletSession],
        tasks: TaskTracker,
        local: LocalCertificate | None = None,
        expected_kind: str = TLS_CERTIFICATE_KIND,
    ):
        self._query = query
        self._wallet_session = wallet_session
        self._tasks = tasks
        self.expected_kind = expected_kind
        self._address: Address | None = None
        self._owner: Address | None = None
        self._generation = 0
        self._remotes: list[RemoteCertificate] | None = None
        self._override: IssuedOverride | None = None
        self.last_error: Exception | None = None
        self.local: Signal[LocalCertificate | None] = Signal("local_certificate", local)
        self.ready: Signal[bool | None] = Signal("cert_ready", self._compute())
        self._unsubscribers = [
            wallet_session.subscribe(self._on_session),
            self.local.subscribe(lambda _: self._recompute()),
        ]

    @property
    def address(self) -> Address | None:
        return self._address

    @property
    def remote_certificates(self) -> list[RemoteCertificate] | None:
        return self._remotes

    @property
    def override(self) -> IssuedOverride | None:
        return self._override

    @property
    def matched_certificate(self) -> RemoteCertificate | None:
        return find_matching_certificate(
            self.local.value, self._remotes or [], self.expected_kind,
        )

    def start(self) -> None:
        self._on_session(self._wallet_session.value)
        self._recompute()

    def set_local_certificate(self, certificate: LocalCertificate | None) -> None:
        self.local.publish(certificate)

    def adopt_issued_certificate(
        self, certificate: LocalCertificate, address: Address | None,
    ) -> None:
        """Make a freshly issued certificate the local candidate, forced ready."""
        if address is not None:
            self._override = IssuedOverride(address, certificate.public_key)
        else:
            logger.warning("Issued certificate adopted without a wallet address to bind it to")
        self.local.publish(certificate)
        self._recompute()

    def refresh(self) -> None:
        if self._address is not None:
            self._run(self._address)

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()

    def _on_session(self, session: WalletSession) -> None:
        owner_changed = session.address != self._owner
        self._owner = session.address
        address = session.active_address
        if address == self._address:
            if owner_changed:
                self._recompute()
            return
        self._address = address
        self._remotes = None
        self._generation += 1
        self._recompute()
        if address is not None:
            self._run(address)

    def _run(self, address: Address) -> None:
        self._generation += 1
        self._tasks.spawn(
            self._run_query(address, self._generation), "certificate-query",
        )

    def _is_current(self, address: Address, generation: int) -> bool:
        return address == self._address and generation == self._generation

    async def _run_query(self, address: Address, generation: int) -> None:
        try:
            remotes = await self._query.query_certificates(address)
        except Exception as e:
            if not self._is_current(address, generation):
                return
            logger.warning(
                "Certificate query failed: %s", e, extra={"address": address},
            )
            self.last_error = e
            self._remotes = []
            self._recompute()
            return

        if not self._is_current(address, generation):
            logger.info(
                "Discarding stale certificate list", extra={"address": address},
            )
            return
        self.last_error = None
        self._remotes = list(remotes or [])
        self._recompute()

    def _compute(self) -> bool | None:
        remotes = self._remotes if self._address is not None else []
        return certificate_ready(
            self.local.value, remotes, self._owner,
            self._override, self.expected_kind,
        )

    def _recompute(self) -> None:
        self.ready.publish(self._compute())
