"""Resilient Chain Client — wraps httpx.AsyncClient over the chain REST (LCD) API.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection): max N retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to ChainAPIError (core/errors.py)
    - Certificate pagination followed until next_key is empty (bounded by MAX_PAGES)

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the balance probe and
      certificate registry, which never retry themselves (ADR: single responsibility)
    - ±25% jitter on backoff: prevents thundering herd when many flows start at once
    - Injectable transport: tests use httpx.MockTransport instead of patching
"""

import asyncio
import logging
import random

import httpx

from preflight.core.certificate_match import RemoteCertificate
from preflight.core.domain_types import Address, BASE_DENOM, CertificateState
from preflight.core.errors import ChainAPIError, ErrorContext
from preflight.core.funding import BalanceSnapshot

logger = logging.getLogger(__name__)

_BALANCE_PATH = "/cosmos/bank/v1beta1/balances/{address}/by_denom"
_CERTIFICATES_PATH = "/akash/cert/v1beta3/certificates/list"
_NODE_INFO_PATH = "/cosmos/base/tendermint/v1beta1/node_info"


class ResilientChainClient:
    """Balance + certificate registry reads with retry, backoff, and error mapping."""

    MAX_PAGES = 20

    def __init__(
        self,
        base_url: str,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: int = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def fetch_balance(self, address: Address) -> BalanceSnapshot:
        """uakt balance of address, in base units."""
        ctx = ErrorContext(address=address, check="funds")
        data = await self._get_json(
            _BALANCE_PATH.format(address=address),
            params={"denom": BASE_DENOM},
            context=ctx,
        )
        balance = data.get("balance") or {}
        try:
            amount = int(balance.get("amount", 0))
        except (TypeError, ValueError):
            raise ChainAPIError(
                f"Unparseable balance amount: {balance.get('amount')!r}",
                "malformed_response", context=ctx,
            )
        return BalanceSnapshot(amount_in_base_unit=amount, address=address)

    async def query_certificates(self, address: Address) -> list[RemoteCertificate]:
        """Every certificate registered by address (any state)."""
        ctx = ErrorContext(address=address, check="certificate")
        certificates: list[RemoteCertificate] = []
        next_key: str | None = None
        for _ in range(self.MAX_PAGES):
            params = {"filter.owner": address}
            if next_key:
                params["pagination.key"] = next_key
            data = await self._get_json(_CERTIFICATES_PATH, params=params, context=ctx)
            certificates.extend(
                _parse_certificate(entry) for entry in data.get("certificates") or []
            )
            next_key = (data.get("pagination") or {}).get("next_key")
            if not next_key:
                return certificates
        logger.warning(
            "Certificate pagination truncated after %d pages", self.MAX_PAGES,
            extra={"address": address},
        )
        return certificates

    async def health_check(self) -> bool:
        """Check chain REST connectivity (for readiness probes)."""
        try:
            response = await self.client.get(_NODE_INFO_PATH)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Chain health check failed: {e}")
            return False

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get_json(
        self, path: str, *, params: dict, context: ErrorContext,
    ) -> dict:
        """GET with automatic retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(path, params=params)
            except httpx.TimeoutException:
                raise ChainAPIError(
                    f"Timeout on {path}", "timeout", context=context,
                )
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, context)
                continue

            if response.status_code == 429:
                await self._handle_rate_limit(response, attempt, context)
                continue
            if response.status_code >= 500:
                await self._handle_transient_error(
                    f"HTTP {response.status_code}", attempt, context,
                )
                continue
            if response.status_code >= 400:
                raise ChainAPIError(
                    f"HTTP {response.status_code} on {path}", "client_error",
                    status_code=response.status_code, context=context,
                )
            try:
                data = response.json()
            except ValueError:
                raise ChainAPIError(
                    f"Non-JSON response from {path}", "malformed_response",
                    status_code=response.status_code, context=context,
                )
            self._log_success(path, attempt, context)
            return data if isinstance(data, dict) else {}
        raise ChainAPIError(
            "Retries exhausted", "connection_error", context=context,
        )

    def _log_success(self, path: str, attempt: int, context: ErrorContext) -> None:
        logger.debug(
            "Chain REST success %s", path,
            extra={"attempt": attempt + 1, "address": context.address},
        )

    async def _handle_rate_limit(
        self, response: httpx.Response, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle rate limit response with retry or raise."""
        retry_after_ms = self._extract_retry_after(response)
        if attempt >= self.max_retries:
            raise ChainAPIError(
                "Rate limit exceeded after retries",
                "rate_limit",
                status_code=429,
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Chain rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: object, attempt: int, context: ErrorContext,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise ChainAPIError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Chain transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None


def _parse_certificate(entry: dict) -> RemoteCertificate:
    """One `certificates[]` item -> RemoteCertificate (pubkey stays base64)."""
    cert = entry.get("certificate") or {}
    return RemoteCertificate(
        public_key_base64=cert.get("pubkey", ""),
        state=CertificateState.parse(cert.get("state")),
        serial=entry.get("serial"),
    )
