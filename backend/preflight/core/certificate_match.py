"""Certificate Matching — decides whether the locally held certificate is trusted on chain.

Invariants:
    - No local candidate => not ready, without looking at the remote list
    - Remote public keys arrive base64-encoded; compared as decoded ASCII text
    - A match requires equal public key AND the expected credential kind
    - Only a match in VALID state satisfies readiness (REVOKED, PENDING, UNKNOWN do not)
    - An empty remote list is "no match", never an error
    - A freshly issued certificate overrides registry state for the same address + key

Design Decisions:
    - Undecodable remote entries are skipped, not raised: one corrupt record must not
      hide a valid match elsewhere in the list
    - Override is a tagged value (address, public_key) rather than a bare flag, so
      switching accounts or local certificates cannot inherit it
"""

import base64
import binascii
from dataclasses import dataclass

from preflight.core.domain_types import (
    Address, CertificateState, TLS_CERTIFICATE_KIND,
)


@dataclass(frozen=True)
class LocalCertificate:
    """The locally selected certificate (public key in PEM text + credential kind)."""

    public_key: str
    kind: str = TLS_CERTIFICATE_KIND


@dataclass(frozen=True)
class RemoteCertificate:
    """One registry entry for an account, as returned by the chain."""

    public_key_base64: str
    state: CertificateState = CertificateState.UNKNOWN
    serial: str | None = None


@dataclass(frozen=True)
class IssuedOverride:
    """Forced-satisfied marker for a certificate issued during this flow."""

    address: Address
    public_key: str


def decode_public_key(public_key_base64: str) -> str | None:
    """Transport encoding (base64) -> comparable representation (ASCII)."""
    try:
        raw = base64.b64decode(public_key_base64, validate=True)
        return raw.decode("ascii")
    except (binascii.Error, ValueError):
        return None


def find_matching_certificate(
    local: LocalCertificate | None,
    remotes: list[RemoteCertificate],
    expected_kind: str = TLS_CERTIFICATE_KIND,
) -> RemoteCertificate | None:
    """Return the remote entry matching the local candidate, or None."""
    if local is None or local.kind != expected_kind:
        return None
    for remote in remotes:
        if decode_public_key(remote.public_key_base64) == local.public_key:
            return remote
    return None


def override_applies(
    override: IssuedOverride | None,
    local: LocalCertificate | None,
    address: Address | None,
) -> bool:
    if override is None or local is None:
        return False
    return override.address == address and override.public_key == local.public_key


def certificate_ready(
    local: LocalCertificate | None,
    remotes: list[RemoteCertificate] | None,
    address: Address | None = None,
    override: IssuedOverride | None = None,
    expected_kind: str = TLS_CERTIFICATE_KIND,
) -> bool | None:
    """Tri-state: True/False once decidable, None while the registry list is unknown."""
    if local is None:
        return False
    if override_applies(override, local, address):
        return True
    if remotes is None:
        return None
    match = find_matching_certificate(local, remotes, expected_kind)
    return match is not None and match.state == CertificateState.VALID
