"""Certificate Issuer — user-initiated creation and broadcast of a new certificate.

Invariants:
    - Tolerates invocation in any readiness state (no preconditions enforced here)
    - At most one broadcast outstanding; a second request reports IN_PROGRESS
    - in_flight is True exactly while the broadcast is outstanding
    - Success (code 0 + certificate) => adopted as local candidate with issued override
    - Any other outcome => local candidate untouched, FAILED with a recoverable error
"""

import logging

from preflight.core.collaborator_protocols import CertificateBroadcaster
from preflight.core.domain_types import IssuanceStatus
from preflight.core.errors import ErrorContext, IssuanceFailureError
from preflight.core.issuance import issued_certificate_or_error
from preflight.core.wallet_session import WalletSession
from preflight.services.certificate_registry import CertificateRegistry
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


class CertificateIssuer:
    """Runs certificate issuance and feeds the result back into the registry."""

    def __init__(
        self,
        broadcaster: CertificateBroadcaster,
        wallet_session: Signal[WalletSession],
        registry: CertificateRegistry,
        tasks: TaskTracker,
        endpoint: str,
    ):
        self._broadcaster = broadcaster
        self._wallet_session = wallet_session
        self._registry = registry
        self._tasks = tasks
        self.endpoint = endpoint
        self.status = IssuanceStatus.IDLE
        self.last_error: IssuanceFailureError | None = None
        self.in_flight: Signal[bool] = Signal("certificate_issuing", False)

    def request_issuance(self) -> IssuanceStatus:
        """Fire-and-forget entry point; outcome observed through signals."""
        if self.in_flight.value:
            logger.info("Certificate issuance already in progress")
            return IssuanceStatus.IN_PROGRESS
        self._begin()
        self._tasks.spawn(self._broadcast(), "certificate-issue")
        return self.status

    async def issue(self) -> IssuanceStatus:
        """Awaitable variant: returns the final status of this request."""
        if self.in_flight.value:
            logger.info("Certificate issuance already in progress")
            return IssuanceStatus.IN_PROGRESS
        self._begin()
        return await self._broadcast()

    def _begin(self) -> None:
        self.status = IssuanceStatus.IN_PROGRESS
        self.last_error = None
        self.in_flight.publish(True)

    async def _broadcast(self) -> IssuanceStatus:
        session = self._wallet_session.value
        # connected is enough to bind the override; sign-in may come later
        address = session.address
        try:
            response = await self._broadcaster.issue_certificate(self.endpoint, session)
            certificate = issued_certificate_or_error(response)
        except IssuanceFailureError as e:
            self._fail(e, address)
        except Exception as e:
            self._fail(
                IssuanceFailureError(
                    f"Broadcast request failed: {e}",
                    context=ErrorContext(address=address),
                ),
                address,
            )
        else:
            logger.info("Certificate issued", extra={"address": address})
            self._registry.adopt_issued_certificate(certificate, address)
            self.status = IssuanceStatus.SUCCEEDED
        finally:
            self.in_flight.publish(False)
        return self.status

    def _fail(self, error: IssuanceFailureError, address: str | None) -> None:
        logger.warning(
            "Certificate issuance failed: %s", error.message,
            extra={"address": address, "tx_code": error.tx_code},
        )
        self.last_error = error
        self.status = IssuanceStatus.FAILED
