"""Browser Wallet Bridge — WalletProvider fed by the browser that owns the wallet extension.

Invariants:
    - Session reports replace the current session wholesale (latest report wins)
    - connect() is idempotent once connected and resolves when a connected session
      is reported; until then the flow shows CONNECTING
    - connect_requests counts how often the flow asked the browser to connect

Design Decisions:
    - Extension detection is reported once at flow creation (it only changes on reload)
    - asyncio.Event over polling: the route handler reporting the session wakes the
      pending connect() directly
"""

import asyncio
import logging

from preflight.core.collaborator_protocols import Unsubscribe, WalletListener
from preflight.core.wallet_session import DISCONNECTED, WalletSession

logger = logging.getLogger(__name__)


class BrowserWalletBridge:
    """Holds the browser-reported wallet session for one preflight flow."""

    def __init__(self, extension_present: bool, session: WalletSession = DISCONNECTED):
        self.extension_present = extension_present
        self.connect_requests = 0
        self._session = session
        self._listeners: list[WalletListener] = []
        self._connected = asyncio.Event()
        if session.connected:
            self._connected.set()

    @property
    def connect_requested(self) -> bool:
        return self.connect_requests > 0 and not self._session.connected

    async def connect(self) -> None:
        if self._session.connected:
            return
        self.connect_requests += 1
        logger.info("Wallet connection requested from browser")
        await self._connected.wait()

    def current_session(self) -> WalletSession:
        return self._session

    def subscribe(self, listener: WalletListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def report_session(self, session: WalletSession) -> None:
        """Browser-side update (sign-in, account switch, disconnect)."""
        self._session = session
        if session.connected:
            self._connected.set()
        else:
            self._connected.clear()
        for listener in list(self._listeners):
            listener(session)
