"""API test fixtures — FastAPI test client over fake collaborators.

Invariants:
    - get_collaborators overridden: no chain node or relay is ever contacted
    - Every test starts and ends with an empty flow registry

Design Decisions:
    - ASGITransport does not run the lifespan, so the dependency override is the
      only source of collaborators in these tests
"""

import pytest
from httpx import ASGITransport, AsyncClient

from preflight.api.routes.preflight_lifecycle import _flows
from preflight.infrastructure.clients import Collaborators, get_collaborators
from preflight.main import app

from tests.fakes import (
    ALICE, FakeBalanceFetcher, FakeBroadcaster, FakeCertificateQuery,
    FakeManifestDeriver,
)


@pytest.fixture
def collaborators():
    return Collaborators(
        balances=FakeBalanceFetcher({ALICE: 10_000_000}),
        certificates=FakeCertificateQuery({ALICE: []}),
        manifests=FakeManifestDeriver(),
        broadcaster=FakeBroadcaster(),
        rpc_endpoint="https://rpc.example.org",
    )


@pytest.fixture
async def client(collaborators):
    """FastAPI test client with collaborators overridden."""
    app.dependency_overrides[get_collaborators] = lambda: collaborators
    _flows.clear()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    for flow in list(_flows.values()):
        flow.check.close()
    _flows.clear()
    app.dependency_overrides.clear()
