"""Certificate Broadcaster — asks the signing relay to create and broadcast a certificate.

Invariants:
    - Exactly one POST per issuance request: broadcasts are NOT retried (not idempotent)
    - Transport failures and non-2xx responses raise IssuanceFailureError
    - A 2xx body is mapped to IssuanceResponse as-is; success judgement lives in core

Design Decisions:
    - Key generation + signing stay in the relay that holds the wallet session;
      this client only carries the request and the resulting certificate
      (ADR: no cryptography in this service)
"""

import logging

import httpx

from preflight.core.certificate_match import LocalCertificate
from preflight.core.domain_types import TLS_CERTIFICATE_KIND
from preflight.core.errors import ErrorContext, IssuanceFailureError
from preflight.core.issuance import IssuanceResponse
from preflight.core.wallet_session import WalletSession

logger = logging.getLogger(__name__)


class HttpCertificateBroadcaster:
    """POSTs issuance requests to the configured relay URL."""

    def __init__(
        self,
        url: str,
        timeout_seconds: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def issue_certificate(
        self, endpoint: str, session: WalletSession,
    ) -> IssuanceResponse:
        ctx = ErrorContext(address=session.address, check="certificate")
        try:
            response = await self.client.post(
                self.url,
                json={"rpc_endpoint": endpoint, "address": session.address},
            )
        except httpx.HTTPError as e:
            raise IssuanceFailureError(f"Relay unreachable: {e}", context=ctx)
        if response.status_code >= 400:
            raise IssuanceFailureError(
                f"Relay returned HTTP {response.status_code}", context=ctx,
            )
        try:
            body = response.json()
        except ValueError:
            raise IssuanceFailureError("Relay returned a non-JSON body", context=ctx)
        return parse_issuance_body(body)

    async def aclose(self) -> None:
        await self.client.aclose()


def parse_issuance_body(body: object) -> IssuanceResponse:
    """Relay JSON -> IssuanceResponse. Missing code is treated as failure."""
    if not isinstance(body, dict):
        raise IssuanceFailureError("Relay returned a malformed body")
    code = body.get("code")
    if not isinstance(code, int):
        raise IssuanceFailureError(f"Relay returned no result code: {code!r}")
    raw_cert = body.get("certificate")
    certificate = None
    if isinstance(raw_cert, dict):
        public_key = raw_cert.get("publicKey") or raw_cert.get("public_key")
        kind = raw_cert.get("$type") or raw_cert.get("kind") or TLS_CERTIFICATE_KIND
        if public_key:
            certificate = LocalCertificate(public_key=public_key, kind=kind)
    return IssuanceResponse(
        code=code, certificate=certificate, raw_log=body.get("raw_log"),
    )
