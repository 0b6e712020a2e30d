"""Preflight Lifecycle — create/read/discard flows and feed them browser-side inputs.

Invariants:
    - One PreflightCheck per flow, in-memory (module-level dict), discarded on DELETE
    - Inputs (wallet, spec, certificate) are validated by Pydantic before reaching core
    - Every mutating endpoint returns the readiness snapshot after the change
    - submit is the only forward action: 409 unless every check is satisfied
    - A flow untouched for flow_idle_timeout_seconds with no open event stream is
      closed and dropped by the idle sweeper (browsers do not always send DELETE)

Design Decisions:
    - _flows as module-level dict: readiness is transient by definition, rebuilt each
      time the flow is entered (ADR: single-process uvicorn, state lost on restart is fine)
    - get_flow_or_404 exported for reuse by preflight_stream (DRY over duplication)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from fastapi import APIRouter, Depends, Response, status

from preflight.config import get_settings
from preflight.core.certificate_match import LocalCertificate
from preflight.core.domain_types import Address
from preflight.core.errors import ResourceNotFoundError
from preflight.core.wallet_session import DISCONNECTED, WalletSession
from preflight.infrastructure.clients import Collaborators, get_collaborators
from preflight.infrastructure.observability import bind_preflight_id
from preflight.infrastructure.wallet_bridge import BrowserWalletBridge
from preflight.schemas.preflight import (
    LocalCertificateUpdate, PreflightCreate, ReadinessResponse, SpecUpdate,
    SubmissionResponse, WalletSessionUpdate,
)
from preflight.services.preflight_check import PreflightCheck

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/preflight", tags=["preflight"])


@dataclass
class PreflightFlow:
    check: PreflightCheck
    wallet: BrowserWalletBridge
    last_seen: float = field(default_factory=time.monotonic)
    open_streams: int = 0

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_for(self, now: float) -> float:
        return now - self.last_seen

    def snapshot(self) -> dict:
        return {
            **self.check.snapshot(),
            "connect_requested": self.wallet.connect_requested,
        }


# ADR: flows are in-memory (not DB/Redis)
# Context: readiness never outlives the page that entered the flow
_flows: dict[str, PreflightFlow] = {}


def get_flow_or_404(preflight_id: str) -> PreflightFlow:
    """Get flow or raise 404. Exported for preflight_stream."""
    flow = _flows.get(preflight_id)
    if flow is None:
        raise ResourceNotFoundError("Preflight", preflight_id)
    bind_preflight_id(preflight_id)
    flow.touch()
    return flow


def discard_flow(preflight_id: str) -> PreflightFlow | None:
    """Remove a flow and cancel its outstanding fetches."""
    flow = _flows.pop(preflight_id, None)
    if flow is not None:
        flow.check.close()
    return flow


def sweep_idle_flows(max_idle_seconds: float, now: float | None = None) -> list[str]:
    """Discard flows idle longer than max_idle_seconds. Returns their ids."""
    now = time.monotonic() if now is None else now
    expired = [
        preflight_id for preflight_id, flow in _flows.items()
        if flow.open_streams == 0 and flow.idle_for(now) > max_idle_seconds
    ]
    for preflight_id in expired:
        discard_flow(preflight_id)
        logger.info("Discarded idle preflight flow", extra={"preflight_id": preflight_id})
    return expired


async def run_idle_sweeper(interval_seconds: float, max_idle_seconds: float) -> None:
    """Background loop started by the app lifespan."""
    while True:
        await asyncio.sleep(interval_seconds)
        sweep_idle_flows(max_idle_seconds)


def _to_session(body: WalletSessionUpdate | None) -> WalletSession:
    if body is None:
        return DISCONNECTED
    return WalletSession(
        connected=body.connected,
        signed_in=body.signed_in,
        address=Address(body.address) if body.address else None,
    )


def _to_certificate(body: LocalCertificateUpdate | None) -> LocalCertificate | None:
    if body is None:
        return None
    return LocalCertificate(public_key=body.public_key, kind=body.kind)


@router.post(
    "", response_model=ReadinessResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_preflight(
    body: PreflightCreate,
    clients: Collaborators = Depends(get_collaborators),
):
    """Enter the preflight flow — builds a fresh orchestrator."""
    settings = get_settings()
    wallet = BrowserWalletBridge(body.extension_present, _to_session(body.wallet))
    check = PreflightCheck(
        wallet=wallet,
        balances=clients.balances,
        manifests=clients.manifests,
        certificates=clients.certificates,
        broadcaster=clients.broadcaster,
        rpc_endpoint=clients.rpc_endpoint,
        local_certificate=_to_certificate(body.certificate),
        min_funding=settings.min_funding_display,
        certificate_kind=settings.certificate_kind,
    )
    flow = PreflightFlow(check=check, wallet=wallet)
    _flows[check.id] = flow
    bind_preflight_id(check.id)
    check.start(spec=body.sdl)
    return flow.snapshot()


@router.get("/{preflight_id}", response_model=ReadinessResponse)
async def get_preflight(preflight_id: str):
    """Synchronous readiness snapshot."""
    return get_flow_or_404(preflight_id).snapshot()


@router.delete("/{preflight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_preflight(preflight_id: str):
    """Leave the flow — cancels outstanding fetches."""
    if discard_flow(preflight_id) is None:
        raise ResourceNotFoundError("Preflight", preflight_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{preflight_id}/wallet", response_model=ReadinessResponse)
async def report_wallet(preflight_id: str, body: WalletSessionUpdate):
    """Browser reports a wallet session change (sign-in, account switch)."""
    flow = get_flow_or_404(preflight_id)
    flow.wallet.report_session(_to_session(body))
    return flow.snapshot()


@router.post("/{preflight_id}/wallet/connect", response_model=ReadinessResponse)
async def connect_wallet(preflight_id: str):
    """User clicked "Connect Wallet"."""
    flow = get_flow_or_404(preflight_id)
    flow.check.request_wallet_connection()
    return flow.snapshot()


@router.put("/{preflight_id}/spec", response_model=ReadinessResponse)
async def update_spec(preflight_id: str, body: SpecUpdate):
    """Replace the workload spec; fingerprint recomputed asynchronously."""
    flow = get_flow_or_404(preflight_id)
    flow.check.update_spec(body.sdl)
    return flow.snapshot()


@router.put("/{preflight_id}/certificate", response_model=ReadinessResponse)
async def set_certificate(preflight_id: str, body: LocalCertificateUpdate):
    """Select the locally held certificate."""
    flow = get_flow_or_404(preflight_id)
    flow.check.set_local_certificate(_to_certificate(body))
    return flow.snapshot()


@router.post(
    "/{preflight_id}/certificate/issue",
    response_model=ReadinessResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def issue_certificate(preflight_id: str):
    """User clicked "Create Certificate" — outcome arrives via snapshot/events."""
    flow = get_flow_or_404(preflight_id)
    flow.check.request_certificate_issuance()
    return flow.snapshot()


@router.post("/{preflight_id}/refresh", response_model=ReadinessResponse)
async def refresh_preflight(preflight_id: str):
    """Re-query balance and certificates for the current account."""
    flow = get_flow_or_404(preflight_id)
    flow.check.refresh()
    return flow.snapshot()


@router.post("/{preflight_id}/submit", response_model=SubmissionResponse)
async def submit_preflight(preflight_id: str):
    """Gated forward action — 409 CHECKS_NOT_SATISFIED unless all_ready."""
    ticket = get_flow_or_404(preflight_id).check.submit()
    return {
        "address": ticket.address,
        "manifest_fingerprint": ticket.manifest_fingerprint,
    }
