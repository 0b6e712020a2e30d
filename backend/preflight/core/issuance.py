"""Certificate Issuance — pure interpretation of a broadcast response.

Invariants:
    - Success requires the distinguished success code AND a returned certificate
    - Anything else is an IssuanceFailureError; local certificate state is untouched
"""

from dataclasses import dataclass

from preflight.core.certificate_match import LocalCertificate
from preflight.core.domain_types import BROADCAST_SUCCESS_CODE
from preflight.core.errors import IssuanceFailureError


@dataclass(frozen=True)
class IssuanceResponse:
    """Broadcast result as reported by the certificate issuer collaborator."""

    code: int
    certificate: LocalCertificate | None = None
    raw_log: str | None = None


def is_successful(response: IssuanceResponse) -> bool:
    return response.code == BROADCAST_SUCCESS_CODE and response.certificate is not None


def issued_certificate_or_error(response: IssuanceResponse) -> LocalCertificate:
    """Return the issued certificate, or raise describing why the response failed."""
    if response.code != BROADCAST_SUCCESS_CODE:
        raise IssuanceFailureError(
            f"Broadcast rejected with code {response.code}: {response.raw_log or 'no log'}",
            tx_code=response.code,
        )
    if response.certificate is None:
        raise IssuanceFailureError(
            "Broadcast succeeded but returned no certificate",
            tx_code=response.code,
        )
    return response.certificate
