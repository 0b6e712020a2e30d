"""Collaborator Clients — process-wide chain client, broadcaster, and SDL deriver.

Invariants:
    - Clients are created once on startup (lifespan) and closed on shutdown
    - get_collaborators() is the only way routes obtain them (overridable in tests)

Design Decisions:
    - Singletons over per-flow clients: httpx.AsyncClient pools connections; one per
      flow would repeat TLS handshakes for every deployment attempt
"""

import logging
from dataclasses import dataclass

from preflight.config import Settings
from preflight.core.collaborator_protocols import (
    BalanceFetcher, CertificateBroadcaster, CertificateQuery, ManifestDeriver,
)
from preflight.infrastructure.certificate_broadcaster import HttpCertificateBroadcaster
from preflight.infrastructure.chain_client import ResilientChainClient
from preflight.infrastructure.sdl_manifest import SdlManifestDeriver

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """Everything a PreflightCheck needs besides the per-flow wallet bridge."""
    balances: BalanceFetcher
    certificates: CertificateQuery
    manifests: ManifestDeriver
    broadcaster: CertificateBroadcaster
    rpc_endpoint: str


# Singleton (initialized on startup)
collaborators: Collaborators | None = None


def init_clients(settings: Settings) -> Collaborators:
    global collaborators
    chain = ResilientChainClient(
        settings.chain_rest_url,
        max_retries=settings.chain_max_retries,
        base_delay_ms=settings.chain_base_delay_ms,
        max_delay_ms=settings.chain_max_delay_ms,
        timeout_seconds=settings.chain_timeout_seconds,
    )
    collaborators = Collaborators(
        balances=chain,
        certificates=chain,
        manifests=SdlManifestDeriver(),
        broadcaster=HttpCertificateBroadcaster(settings.certificate_broadcast_url),
        rpc_endpoint=settings.rpc_endpoint,
    )
    return collaborators


async def close_clients() -> None:
    global collaborators
    if collaborators is None:
        return
    # balances and certificates share one chain client
    for client in (collaborators.balances, collaborators.broadcaster):
        aclose = getattr(client, "aclose", None)
        if aclose is not None:
            await aclose()
    collaborators = None


def get_collaborators() -> Collaborators:
    """FastAPI dependency for collaborator clients."""
    if not collaborators:
        raise RuntimeError("Collaborator clients not initialized")
    return collaborators
