"""Certificate Issuer — tests for issuance outcomes and the in-progress state.

Tests cover:
    - Success => adopted as local candidate, cert_ready True before any registry refresh
    - Non-zero code => FAILED, local candidate untouched, tx_code recorded
    - Broadcaster exception => FAILED with IssuanceFailureError, no crash
    - in_flight True exactly while the broadcast is outstanding
    - Second request while in flight does not broadcast again
    - Issuance while connected but not signed in stays ready through sign-in
"""

import asyncio

from preflight.core.domain_types import IssuanceStatus
from preflight.core.errors import IssuanceFailureError
from preflight.core.issuance import IssuanceResponse
from preflight.core.wallet_session import DISCONNECTED, WalletSession
from preflight.services.certificate_issuer import CertificateIssuer
from preflight.services.certificate_registry import CertificateRegistry
from preflight.services.signal import Signal
from preflight.services.task_tracker import TaskTracker

from tests.fakes import (
    ALICE, BOB, PUBLIC_KEY, FakeBroadcaster, FakeCertificateQuery, signed_in,
)

RPC = "https://rpc.example.org"


async def _issuer(broadcaster, query=None, session=None):
    tasks = TaskTracker()
    wallet = Signal("wallet_session", signed_in(ALICE) if session is None else session)
    registry = CertificateRegistry(query or FakeCertificateQuery({ALICE: []}), wallet, tasks)
    registry.start()
    await tasks.settle()
    issuer = CertificateIssuer(broadcaster, wallet, registry, tasks, RPC)
    return issuer, registry, tasks, wallet


async def test_success_makes_certificate_ready_immediately():
    broadcaster = FakeBroadcaster()
    issuer, registry, _, _ = await _issuer(broadcaster)
    assert registry.ready.value is False

    status = await issuer.issue()

    assert status == IssuanceStatus.SUCCEEDED
    assert registry.local.value.public_key == PUBLIC_KEY
    assert registry.ready.value is True
    assert registry.remote_certificates == []
    endpoint, session = broadcaster.calls[0]
    assert endpoint == RPC
    assert session.address == ALICE


async def test_failure_code_leaves_local_certificate_unchanged():
    broadcaster = FakeBroadcaster(
        IssuanceResponse(code=11, certificate=None, raw_log="out of gas"),
    )
    issuer, registry, _, _ = await _issuer(broadcaster)

    status = await issuer.issue()

    assert status == IssuanceStatus.FAILED
    assert registry.local.value is None
    assert registry.ready.value is False
    assert issuer.last_error.tx_code == 11
    assert issuer.last_error.recoverable


async def test_success_code_without_certificate_fails():
    broadcaster = FakeBroadcaster(IssuanceResponse(code=0, certificate=None))
    issuer, registry, _, _ = await _issuer(broadcaster)
    assert await issuer.issue() == IssuanceStatus.FAILED
    assert registry.ready.value is False


async def test_broadcaster_exception_becomes_failed_status():
    broadcaster = FakeBroadcaster(error=ConnectionError("relay down"))
    issuer, _, _, _ = await _issuer(broadcaster)

    status = await issuer.issue()

    assert status == IssuanceStatus.FAILED
    assert isinstance(issuer.last_error, IssuanceFailureError)
    assert issuer.in_flight.value is False


async def test_in_flight_while_broadcast_outstanding():
    broadcaster = FakeBroadcaster(manual=True)
    issuer, registry, tasks, _ = await _issuer(broadcaster)

    assert issuer.request_issuance() == IssuanceStatus.IN_PROGRESS
    await asyncio.sleep(0)
    assert issuer.in_flight.value is True
    assert registry.ready.value is False

    broadcaster.resolve(0, broadcaster.response)
    await tasks.settle()
    assert issuer.in_flight.value is False
    assert issuer.status == IssuanceStatus.SUCCEEDED
    assert registry.ready.value is True


async def test_second_request_while_in_flight_does_not_broadcast():
    broadcaster = FakeBroadcaster(manual=True)
    issuer, _, tasks, _ = await _issuer(broadcaster)

    issuer.request_issuance()
    await asyncio.sleep(0)
    assert issuer.request_issuance() == IssuanceStatus.IN_PROGRESS
    assert await issuer.issue() == IssuanceStatus.IN_PROGRESS
    assert len(broadcaster.calls) == 1

    broadcaster.resolve(0, broadcaster.response)
    await tasks.settle()


async def test_retry_after_failure_is_allowed():
    broadcaster = FakeBroadcaster(error=ConnectionError("relay down"))
    issuer, registry, _, _ = await _issuer(broadcaster)
    assert await issuer.issue() == IssuanceStatus.FAILED

    broadcaster.error = None
    assert await issuer.issue() == IssuanceStatus.SUCCEEDED
    assert issuer.last_error is None
    assert registry.ready.value is True


async def test_issued_while_connected_stays_ready_after_sign_in():
    connected = WalletSession(connected=True, signed_in=False, address=ALICE)
    broadcaster = FakeBroadcaster()
    issuer, registry, tasks, wallet = await _issuer(broadcaster, session=connected)

    assert await issuer.issue() == IssuanceStatus.SUCCEEDED
    assert registry.override.address == ALICE
    assert registry.ready.value is True

    wallet.publish(signed_in(ALICE))
    assert registry.ready.value is True
    await tasks.settle()
    assert registry.remote_certificates == []
    assert registry.ready.value is True


async def test_override_from_connected_session_not_inherited_by_other_account():
    connected = WalletSession(connected=True, signed_in=False, address=ALICE)
    issuer, registry, tasks, wallet = await _issuer(
        FakeBroadcaster(), FakeCertificateQuery({ALICE: [], BOB: []}), connected,
    )
    await issuer.issue()

    wallet.publish(signed_in(BOB))
    await tasks.settle()
    assert registry.ready.value is False

    wallet.publish(DISCONNECTED)
    assert registry.ready.value is False
