"""Balance Probe — fetches the signed-in account's balance and derives funds_ready.

Invariants:
    - Fetch only when the wallet is signed in with an address
    - Address change invalidates the cached snapshot before the new fetch resolves
    - Every fetch is tagged (address, generation); results whose tag is no longer
      current are discarded, never applied
    - Fetch failure degrades funds_ready to False; no retry here (fetcher owns retries)

Design Decisions:
    - funds_ready starts UNKNOWN (None) only until the first outcome of the flow;
      later address switches go straight to False while the new fetch is outstanding
"""

import logging
from decimal import Decimal

from preflight.core.collaborator_protocols import BalanceFetcher
from preflight.core.domain_types import Address, MIN_FUNDING_DISPLAY
from preflight.core.funding import BalanceSnapshot, funds_ready
from preflight.core.wallet_session import WalletSession
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

logger = logging.getLogger(__name__)


class BalanceProbe:
    """Tracks the balance of the current address and publishes funds_ready."""

    def __init__(
        self,
        fetcher: BalanceFetcher,
        wallet_session: Signal[WalletSession],
        tasks: TaskTracker,
        minimum: Decimal = MIN_FUNDING_DISPLAY,
    ):
        self._fetcher = fetcher
        self._wallet_session = wallet_session
        self._tasks = tasks
        self.minimum = minimum
        self._address: Address | None = None
        self._generation = 0
        self._observed = False
        self.snapshot: BalanceSnapshot | None = None
        self.last_error: Exception | None = None
        self.ready: Signal[bool | None] = Signal("funds_ready", None)
        self._unsubscribe = wallet_session.subscribe(self._on_session)

    @property
    def address(self) -> Address | None:
        return self._address

    @property
    def display_balance(self) -> Decimal | None:
        if self.snapshot is None or self.snapshot.address != self._address:
            return None
        return self.snapshot.display_amount

    def start(self) -> None:
        self._on_session(self._wallet_session.value)
        if self._address is None:
            self._observed = True
            self._recompute()

    def refresh(self) -> None:
        if self._address is not None:
            self._fetch(self._address)

    def close(self) -> None:
        self._unsubscribe()

    def _on_session(self, session: WalletSession) -> None:
        address = session.active_address
        if address == self._address:
            return
        self._address = address
        self.snapshot = None
        if address is None:
            self._generation += 1
            self._observed = True
        self._recompute()
        if address is not None:
            self._fetch(address)

    def _fetch(self, address: Address) -> None:
        self._generation += 1
        self._tasks.spawn(
            self._run_fetch(address, self._generation), "balance-fetch",
        )

    def _is_current(self, address: Address, generation: int) -> bool:
        return address == self._address and generation == self._generation

    async def _run_fetch(self, address: Address, generation: int) -> None:
        try:
            snapshot = await self._fetcher.fetch_balance(address)
        except Exception as e:
            if not self._is_current(address, generation):
                return
            logger.warning(
                "Balance fetch failed: %s", e, extra={"address": address},
            )
            self.last_error = e
            self.snapshot = None
            self._observed = True
            self._recompute()
            return

        if not self._is_current(address, generation) or snapshot.address != address:
            logger.info(
                "Discarding stale balance result", extra={"address": address},
            )
            return
        self.snapshot = snapshot
        self.last_error = None
        self._observed = True
        self._recompute()

    def _recompute(self) -> None:
        if not self._observed:
            self.ready.publish(None)
            return
        self.ready.publish(funds_ready(self.snapshot, self._address, self.minimum))
