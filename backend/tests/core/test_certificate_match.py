"""Certificate Matching — tests for the pure registry matching algorithm.

Tests cover:
    - No local candidate => not ready (remote list ignored)
    - base64 remote key matching the local key in VALID state => ready
    - Same match in REVOKED / PENDING / UNKNOWN => not ready
    - Empty remote list => not ready, no exception
    - Kind tag mismatch and undecodable keys never match
    - Issued override scoped to the same address + public key
"""

import pytest

from preflight.core.certificate_match import (
    IssuedOverride, LocalCertificate, RemoteCertificate,
    certificate_ready, decode_public_key, find_matching_certificate,
)
from preflight.core.domain_types import CertificateState

from tests.fakes import ALICE, BOB, OTHER_KEY, PUBLIC_KEY, b64, remote

LOCAL = LocalCertificate(public_key=PUBLIC_KEY)


def test_no_local_candidate_is_not_ready():
    assert certificate_ready(None, [remote()], ALICE) is False


def test_no_local_candidate_ignores_unknown_remote_list():
    assert certificate_ready(None, None, ALICE) is False


def test_valid_match_is_ready():
    assert certificate_ready(LOCAL, [remote()], ALICE) is True


@pytest.mark.parametrize("state", [
    CertificateState.REVOKED, CertificateState.PENDING, CertificateState.UNKNOWN,
])
def test_non_valid_match_is_not_ready(state):
    assert certificate_ready(LOCAL, [remote(state=state)], ALICE) is False


def test_empty_remote_list_is_not_ready():
    assert certificate_ready(LOCAL, [], ALICE) is False


def test_unknown_remote_list_is_undecided():
    assert certificate_ready(LOCAL, None, ALICE) is None


def test_match_picks_entry_with_same_public_key():
    remotes = [
        remote(OTHER_KEY, CertificateState.VALID),
        remote(PUBLIC_KEY, CertificateState.REVOKED),
    ]
    match = find_matching_certificate(LOCAL, remotes)
    assert match is not None
    assert match.state == CertificateState.REVOKED
    assert certificate_ready(LOCAL, remotes, ALICE) is False


def test_other_keys_do_not_match():
    assert find_matching_certificate(LOCAL, [remote(OTHER_KEY)]) is None


def test_kind_mismatch_never_matches():
    ssh_like = LocalCertificate(public_key=PUBLIC_KEY, kind="SSH Key")
    assert find_matching_certificate(ssh_like, [remote()]) is None
    assert certificate_ready(ssh_like, [remote()], ALICE) is False


def test_undecodable_remote_entry_is_skipped():
    remotes = [
        RemoteCertificate(public_key_base64="%%%not-base64%%%", state=CertificateState.VALID),
        remote(),
    ]
    assert certificate_ready(LOCAL, remotes, ALICE) is True


def test_decode_public_key_roundtrip_and_failure():
    assert decode_public_key(b64(PUBLIC_KEY)) == PUBLIC_KEY
    assert decode_public_key("!!") is None


def test_override_forces_ready_before_registry_reflects_it():
    override = IssuedOverride(ALICE, PUBLIC_KEY)
    assert certificate_ready(LOCAL, None, ALICE, override) is True
    assert certificate_ready(LOCAL, [remote(state=CertificateState.PENDING)], ALICE, override) is True


def test_override_does_not_follow_account_switch():
    override = IssuedOverride(ALICE, PUBLIC_KEY)
    assert certificate_ready(LOCAL, [], BOB, override) is False


def test_override_does_not_apply_to_other_local_certificate():
    override = IssuedOverride(ALICE, PUBLIC_KEY)
    other = LocalCertificate(public_key=OTHER_KEY)
    assert certificate_ready(other, [], ALICE, override) is False
