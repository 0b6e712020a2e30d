"""Error Hierarchy — typed, categorized exceptions for all preflight failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Upstream failures (extension, fetch, spec, issuance) are recoverable and degrade
      a single check; they never escape the aggregator
    - to_response() produces REST envelope; to_sse_event() produces SSE envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with PreflightError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EXTERNAL_API = "external_api"
    WALLET = "wallet"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    preflight_id: str | None = None
    address: str | None = None
    check: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class PreflightError(Exception):
    """Base exception for all preflight errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "preflight_id": self.context.preflight_id,
                    "address": self.context.address,
                    "check": self.context.check,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to SSE error event."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "severity": self.severity.value,
                "recoverable": self.recoverable,
                "check": self.context.check,
            },
        }


# ─── Upstream Errors (degrade one check, never fatal) ───────────

class ExtensionAbsentError(PreflightError):
    """Wallet extension not detected — permanent until the page reloads."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Wallet extension is not installed",
            "EXTENSION_ABSENT", ErrorCategory.WALLET,
            ErrorSeverity.WARNING, context, 424,
        )


class FetchFailureError(PreflightError):
    """An upstream fetch (balance, certificate list) rejected."""
    def __init__(
        self, message: str, source: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Fetch from {source} failed: {message}",
            "FETCH_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 502,
        )
        self.source = source


class SpecInvalidError(PreflightError):
    """Manifest derivation failed for the current workload spec."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Workload spec could not be validated: {reason}",
            "SPEC_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 422,
        )
        self.reason = reason


class IssuanceFailureError(PreflightError):
    """Certificate broadcast returned failure or a malformed response."""
    def __init__(
        self, message: str, tx_code: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.user_message = ctx.user_message or (
            "Certificate could not be created. Please try again."
        )
        super().__init__(
            message, "ISSUANCE_FAILURE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, ctx, 502,
        )
        self.tx_code = tx_code


# ─── Domain Errors (400-level) ──────────────────────────────────

class GateNotSatisfiedError(PreflightError):
    """Forward action attempted before all readiness checks are satisfied."""
    def __init__(self, missing_checks: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Deployment is not ready. Unsatisfied checks: {', '.join(missing_checks)}",
            "CHECKS_NOT_SATISFIED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.missing_checks = missing_checks


class InvalidWalletSessionError(PreflightError):
    """Reported wallet session violates signed_in => connected => address."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_WALLET_SESSION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class ResourceNotFoundError(PreflightError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors ──────────────────────────────────────

class ChainAPIError(FetchFailureError):
    """Chain REST endpoint failed after retries (or with a non-retryable status)."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        status_code: int | None = None,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(f"{api_error_type}: {message}", "chain", ctx)
        self.code = "CHAIN_API_ERROR"
        self.api_error_type = api_error_type
        self.status_code = status_code
