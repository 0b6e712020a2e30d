"""Collaborator Clients — singleton lifecycle and settings wiring."""

import pytest

from preflight.config import Settings
from preflight.infrastructure import clients
from preflight.infrastructure.chain_client import ResilientChainClient
from preflight.infrastructure.sdl_manifest import SdlManifestDeriver


def test_denom_is_not_a_setting():
    assert "balance_denom" not in Settings.model_fields


async def test_init_and_close_clients():
    settings = Settings(chain_rest_url="http://chain.test/", chain_max_retries=1)
    created = clients.init_clients(settings)

    assert clients.get_collaborators() is created
    assert isinstance(created.balances, ResilientChainClient)
    assert created.balances is created.certificates
    assert created.balances.max_retries == 1
    assert isinstance(created.manifests, SdlManifestDeriver)

    await clients.close_clients()
    with pytest.raises(RuntimeError):
        clients.get_collaborators()
