"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the chain REST node is unreachable (readiness)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from preflight.infrastructure.clients import Collaborators, get_collaborators

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "preflight-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(
    clients: Collaborators = Depends(get_collaborators),
):
    """Readiness probe — includes chain REST connectivity."""
    probe = getattr(clients.balances, "health_check", None)
    chain_ok = await probe() if probe else True
    if not chain_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "chain_unavailable",
            },
        )
    return {"status": "ready", "checks": {"chain": "healthy"}}
