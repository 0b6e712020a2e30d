"""Preflight Routes — lifecycle endpoints over fake collaborators.

Tests cover:
    - POST creates a flow (201) and starts every check
    - Browser inputs (wallet, spec, certificate) update the snapshot
    - Certificate issuance accepted (202), outcome visible on the next GET
    - submit: 409 CHECKS_NOT_SATISFIED until all ready, then the ticket
    - Unknown flow => 404; invalid wallet session => 400; DELETE => 204
"""

import asyncio
import hashlib

from preflight.api.routes.preflight_lifecycle import _flows

from tests.fakes import ALICE, PUBLIC_KEY, VALID_SDL

BASE = "/api/v1/preflight"
SIGNED_IN = {"connected": True, "signed_in": True, "address": ALICE}


async def settle(preflight_id: str) -> None:
    """Wait for the flow's background fetches before reading its snapshot."""
    await _flows[preflight_id].check.settle()


async def _create(client, **body):
    res = await client.post(BASE, json={"extension_present": True, **body})
    assert res.status_code == 201
    preflight_id = res.json()["id"]
    # a flow without a reported wallet keeps its connect request pending
    if "wallet" in body:
        await settle(preflight_id)
    return preflight_id


async def test_create_returns_snapshot(client):
    res = await client.post(BASE, json={"extension_present": True})
    assert res.status_code == 201
    data = res.json()
    assert data["all_ready"] is False
    assert [c["check"] for c in data["checks"]] == ["wallet", "funds", "spec", "certificate"]
    assert data["id"] in _flows


async def test_signed_in_flow_reports_funds_and_spec(client):
    preflight_id = await _create(client, wallet=SIGNED_IN, sdl=VALID_SDL)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["wallet_ready"] is True
    assert data["funds_ready"] is True
    assert data["spec_ready"] is True
    assert data["cert_ready"] is False
    assert data["balance"] == "10"
    assert data["address"] == ALICE


async def test_missing_extension_flow(client):
    res = await client.post(BASE, json={"extension_present": False})
    data = res.json()
    assert data["wallet_status"] == "extension_missing"
    assert data["checks"][0]["action"] == "install_extension"

    connect = await client.post(f"{BASE}/{data['id']}/wallet/connect")
    assert connect.status_code == 424


async def test_connect_then_browser_reports_session(client):
    preflight_id = await _create(client)
    await asyncio.sleep(0)
    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["connect_requested"] is True
    assert data["wallet_status"] == "connecting"

    res = await client.put(f"{BASE}/{preflight_id}/wallet", json=SIGNED_IN)
    assert res.status_code == 200
    await settle(preflight_id)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["wallet_ready"] is True
    assert data["connect_requested"] is False
    assert data["funds_ready"] is True


async def test_invalid_wallet_session_rejected(client):
    preflight_id = await _create(client)
    res = await client.put(
        f"{BASE}/{preflight_id}/wallet",
        json={"connected": False, "signed_in": True, "address": ALICE},
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INVALID_WALLET_SESSION"
    assert error["message"] == "signed_in requires connected"


async def test_spec_update(client):
    preflight_id = await _create(client, wallet=SIGNED_IN, sdl="broken")
    assert (await client.get(f"{BASE}/{preflight_id}")).json()["spec_ready"] is False

    await client.put(f"{BASE}/{preflight_id}/spec", json={"sdl": f"  {VALID_SDL}\n"})
    await settle(preflight_id)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["spec_ready"] is True
    assert data["manifest_fingerprint"] == hashlib.sha256(VALID_SDL.encode()).hexdigest()


async def test_issue_certificate_then_submit(client):
    preflight_id = await _create(client, wallet=SIGNED_IN, sdl=VALID_SDL)

    refused = await client.post(f"{BASE}/{preflight_id}/submit")
    assert refused.status_code == 409
    assert refused.json()["error"]["code"] == "CHECKS_NOT_SATISFIED"

    res = await client.post(f"{BASE}/{preflight_id}/certificate/issue")
    assert res.status_code == 202
    await settle(preflight_id)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["cert_ready"] is True
    assert data["all_ready"] is True
    assert data["issuance"]["status"] == "succeeded"

    ticket = await client.post(f"{BASE}/{preflight_id}/submit")
    assert ticket.status_code == 200
    assert ticket.json()["address"] == ALICE


async def test_issuance_failure_reported(client, collaborators):
    collaborators.broadcaster.error = ConnectionError("relay down")
    preflight_id = await _create(client, wallet=SIGNED_IN, sdl=VALID_SDL)

    await client.post(f"{BASE}/{preflight_id}/certificate/issue")
    await settle(preflight_id)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["cert_ready"] is False
    assert data["issuance"]["status"] == "failed"
    assert data["issuance"]["error"]["code"] == "ISSUANCE_FAILURE"


async def test_set_local_certificate_without_registry_entry(client):
    preflight_id = await _create(client, wallet=SIGNED_IN, sdl=VALID_SDL)
    res = await client.put(
        f"{BASE}/{preflight_id}/certificate", json={"public_key": PUBLIC_KEY},
    )
    assert res.status_code == 200
    assert res.json()["cert_ready"] is False


async def test_refresh_requeries_chain(client, collaborators):
    preflight_id = await _create(client, wallet=SIGNED_IN)
    collaborators.balances.balances[ALICE] = 1_000_000

    await client.post(f"{BASE}/{preflight_id}/refresh")
    await settle(preflight_id)

    data = (await client.get(f"{BASE}/{preflight_id}")).json()
    assert data["funds_ready"] is False
    assert data["balance"] == "1"
    assert collaborators.certificates.calls == [ALICE, ALICE]


async def test_delete_flow(client):
    preflight_id = await _create(client)
    res = await client.delete(f"{BASE}/{preflight_id}")
    assert res.status_code == 204
    assert preflight_id not in _flows

    missing = await client.get(f"{BASE}/{preflight_id}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_unknown_flow_events_404(client):
    res = await client.get(f"{BASE}/does-not-exist/events")
    assert res.status_code == 404
