"""Wallet Tracker — tests for the entry connection request and wallet status.

Tests cover:
    - One automatic connection request when disconnected
    - No request when already connected or extension missing
    - CONNECTING while the request is pending
    - Failed connection leaves the wallet disconnected
    - User-initiated connect without extension raises ExtensionAbsentError
    - Account switches are followed (latest session wins)
"""

import asyncio

import pytest

from preflight.core.domain_types import WalletStatus
from preflight.core.errors import ExtensionAbsentError
from preflight.services.task_tracker import TaskTracker
from preflight.services.wallet_tracker import WalletTracker

from tests.fakes import ALICE, BOB, FakeWallet, signed_in


async def test_start_requests_connection_once():
    wallet = FakeWallet()
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    tracker.start()
    await tasks.settle()
    assert wallet.connect_calls == 1
    assert tracker.ready.value is True
    assert tracker.status.value == WalletStatus.SIGNED_IN


async def test_no_request_when_already_connected():
    wallet = FakeWallet(session=signed_in())
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    await tasks.settle()
    assert wallet.connect_calls == 0
    assert tracker.ready.value is True


async def test_missing_extension_never_connects():
    wallet = FakeWallet(extension_present=False)
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    await tasks.settle()
    assert wallet.connect_calls == 0
    assert tracker.ready.value is False
    assert tracker.status.value == WalletStatus.EXTENSION_MISSING


async def test_status_is_connecting_while_request_pending():
    wallet = FakeWallet()
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    assert tracker.status.value == WalletStatus.CONNECTING
    assert tracker.request_connection() is False
    await tasks.settle()
    assert tracker.status.value == WalletStatus.SIGNED_IN


async def test_failed_connection_returns_to_disconnected():
    wallet = FakeWallet(connect_error=RuntimeError("user rejected"))
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    await tasks.settle()
    assert tracker.status.value == WalletStatus.DISCONNECTED
    assert tracker.ready.value is False


async def test_user_can_retry_after_failure():
    wallet = FakeWallet(connect_error=RuntimeError("user rejected"))
    tasks = TaskTracker()
    tracker = WalletTracker(wallet, tasks)
    tracker.start()
    await tasks.settle()
    wallet.connect_error = None
    assert tracker.request_connection() is True
    await tasks.settle()
    assert wallet.connect_calls == 2
    assert tracker.ready.value is True


def test_user_connect_without_extension_raises():
    tracker = WalletTracker(FakeWallet(extension_present=False), TaskTracker())
    with pytest.raises(ExtensionAbsentError):
        tracker.request_connection()


async def test_account_switch_is_followed():
    wallet = FakeWallet(session=signed_in(ALICE))
    tracker = WalletTracker(wallet, TaskTracker())
    seen = []
    tracker.session.subscribe(lambda s: seen.append(s.address))
    wallet.set_session(signed_in(BOB))
    await asyncio.sleep(0)
    assert tracker.session.value.address == BOB
    assert seen == [BOB]
