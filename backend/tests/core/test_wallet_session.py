"""Wallet Session — tests for session invariants and status derivation.

Tests cover:
    - signed_in => connected => address enforced on construction
    - wallet_ready requires sign-in and an address
    - EXTENSION_MISSING distinct from DISCONNECTED
    - Connection request rule: once, never while pending or connected
"""

import pytest

from preflight.core.domain_types import WalletStatus
from preflight.core.errors import InvalidWalletSessionError
from preflight.core.wallet_session import (
    DISCONNECTED, WalletSession, derive_wallet_status, should_request_connection,
)

from tests.fakes import ALICE, signed_in


def test_signed_in_without_connection_is_rejected():
    with pytest.raises(InvalidWalletSessionError):
        WalletSession(connected=False, signed_in=True, address=ALICE)


def test_connected_without_address_is_rejected():
    with pytest.raises(InvalidWalletSessionError):
        WalletSession(connected=True, signed_in=False, address=None)


def test_wallet_ready_requires_sign_in():
    assert signed_in().wallet_ready
    assert not WalletSession(connected=True, address=ALICE).wallet_ready
    assert not DISCONNECTED.wallet_ready


def test_active_address_only_when_signed_in():
    assert signed_in().active_address == ALICE
    assert WalletSession(connected=True, address=ALICE).active_address is None


def test_missing_extension_is_distinct_status():
    assert derive_wallet_status(False, DISCONNECTED, False) == WalletStatus.EXTENSION_MISSING
    assert derive_wallet_status(True, DISCONNECTED, False) == WalletStatus.DISCONNECTED


def test_status_progression():
    assert derive_wallet_status(True, DISCONNECTED, True) == WalletStatus.CONNECTING
    connected = WalletSession(connected=True, address=ALICE)
    assert derive_wallet_status(True, connected, False) == WalletStatus.CONNECTED
    assert derive_wallet_status(True, signed_in(), False) == WalletStatus.SIGNED_IN


def test_request_connection_once_when_disconnected():
    assert should_request_connection(True, DISCONNECTED, False, False)
    assert not should_request_connection(True, DISCONNECTED, False, True)


def test_no_request_while_pending_or_connected_or_without_extension():
    assert not should_request_connection(True, DISCONNECTED, True, False)
    assert not should_request_connection(True, signed_in(), False, False)
    assert not should_request_connection(False, DISCONNECTED, False, False)
