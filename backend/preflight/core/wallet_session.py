"""Wallet Session — read-only view of the wallet extension's connection state.

Invariants:
    - signed_in => connected => address present (enforced on construction)
    - wallet_ready == signed_in and address present
    - EXTENSION_MISSING is reported instead of DISCONNECTED when no extension exists
    - At most one connection request per flow; never while one is pending or once connected

Design Decisions:
    - Frozen dataclass: sessions are replaced wholesale by the wallet collaborator, never mutated
    - Status derivation is a pure function over (extension_present, session, connect_pending)
"""

from dataclasses import dataclass

from preflight.core.domain_types import Address, WalletStatus
from preflight.core.errors import InvalidWalletSessionError


@dataclass(frozen=True)
class WalletSession:
    """Connection + sign-in status and the active account address."""

    connected: bool = False
    signed_in: bool = False
    address: Address | None = None

    def __post_init__(self):
        if self.signed_in and not self.connected:
            raise InvalidWalletSessionError("signed_in requires connected")
        if self.connected and not self.address:
            raise InvalidWalletSessionError("connected requires an address")

    @property
    def wallet_ready(self) -> bool:
        return self.signed_in and bool(self.address)

    @property
    def active_address(self) -> Address | None:
        """Address usable for account queries — only when signed in."""
        return self.address if self.wallet_ready else None


DISCONNECTED = WalletSession()


def derive_wallet_status(
    extension_present: bool, session: WalletSession, connect_pending: bool,
) -> WalletStatus:
    """Collapse extension detection + session + pending request into one status."""
    if not extension_present:
        return WalletStatus.EXTENSION_MISSING
    if session.wallet_ready:
        return WalletStatus.SIGNED_IN
    if session.connected:
        return WalletStatus.CONNECTED
    if connect_pending:
        return WalletStatus.CONNECTING
    return WalletStatus.DISCONNECTED


def should_request_connection(
    extension_present: bool,
    session: WalletSession,
    connect_pending: bool,
    already_requested: bool,
) -> bool:
    """Rule: one fire-and-forget connection request per flow, only when useful."""
    return (
        extension_present
        and not session.connected
        and not connect_pending
        and not already_requested
    )
