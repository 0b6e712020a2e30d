"""Wallet Tracker — follows the wallet session and issues the entry connection request.

Invariants:
    - Automatic connection request sent at most once per flow, fire-and-forget
    - No request while one is pending or once connected
    - Missing extension => status EXTENSION_MISSING, wallet_ready stays False, no request
    - A failed connection request leaves the wallet disconnected (user may retry)
"""

import logging

from preflight.core.collaborator_protocols import WalletProvider
from preflight.core.domain_types import WalletStatus
from preflight.core.errors import ExtensionAbsentError
from preflight.core.wallet_session import (
    WalletSession, derive_wallet_status, should_request_connection,
)
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


class WalletTracker:
    """Publishes wallet session, wallet_ready and wallet status signals."""

    def __init__(self, provider: WalletProvider, tasks: TaskTracker):
        self._provider = provider
        self._tasks = tasks
        self._connect_pending = False
        self._auto_requested = False
        initial = provider.current_session()
        self.session: Signal[WalletSession] = Signal("wallet_session", initial)
        self.ready: Signal[bool | None] = Signal("wallet_ready", initial.wallet_ready)
        self.status: Signal[WalletStatus] = Signal(
            "wallet_status", self._derive_status(initial),
        )
        self._unsubscribe = provider.subscribe(self.observe)

    @property
    def extension_present(self) -> bool:
        return self._provider.extension_present

    def start(self) -> None:
        """Entry hook: request a connection once if none exists."""
        if not self.extension_present:
            logger.info("Wallet extension not detected, skipping connection request")
            return
        if should_request_connection(
            self.extension_present, self.session.value,
            self._connect_pending, self._auto_requested,
        ):
            self._auto_requested = True
            self._begin_connect()

    def request_connection(self) -> bool:
        """User-initiated connect. Returns False when nothing was sent."""
        if not self.extension_present:
            raise ExtensionAbsentError()
        if self.session.value.connected or self._connect_pending:
            return False
        self._begin_connect()
        return True

    def observe(self, session: WalletSession) -> None:
        """Wallet provider callback — latest session always wins."""
        self.session.publish(session)
        self.ready.publish(session.wallet_ready)
        self.status.publish(self._derive_status(session))

    def close(self) -> None:
        self._unsubscribe()

    def _derive_status(self, session: WalletSession) -> WalletStatus:
        return derive_wallet_status(
            self.extension_present, session, self._connect_pending,
        )

    def _begin_connect(self) -> None:
        self._connect_pending = True
        self.status.publish(self._derive_status(self.session.value))
        self._tasks.spawn(self._connect(), "wallet-connect")

    async def _connect(self) -> None:
        try:
            await self._provider.connect()
        except Exception as e:
            logger.warning("Wallet connection request failed: %s", e)
        finally:
            self._connect_pending = False
            self.observe(self._provider.current_session())
