"""Error Handlers — turn preflight failures into the error envelope the browser renders.

Invariants:
    - Every error body is {"error": {code, message, category, severity, ...}}
    - A closed gate (409) lists missing_checks so the UI can point at them
    - A missing wallet extension (424) names the remedial action (install_extension)
    - A wallet session violating signed_in => connected => address is reported as
      INVALID_WALLET_SESSION with the violated rule as the message, not a field dump
    - Unexpected exceptions return INTERNAL_ERROR; the flow id is logged, details are not returned

Design Decisions:
    - Recovery hints added here, not in core/errors.py: to_response() stays the
      transport-neutral envelope shared with SSE
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from preflight.core.domain_types import RemedialAction
from preflight.core.errors import (
    ErrorSeverity, ExtensionAbsentError, GateNotSatisfiedError, PreflightError,
)
from preflight.schemas.preflight import WALLET_SESSION_ERROR

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PreflightError, handle_preflight_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


def _flow_id(request: Request) -> str | None:
    return request.path_params.get("preflight_id")


def preflight_error_body(exc: PreflightError) -> dict:
    """to_response() plus what the browser needs to recover from this error."""
    body = exc.to_response()
    error = body["error"]
    if isinstance(exc, GateNotSatisfiedError):
        error["missing_checks"] = list(exc.missing_checks)
    elif isinstance(exc, ExtensionAbsentError):
        error["action"] = RemedialAction.INSTALL_EXTENSION.value
    if exc.context.user_message:
        error["user_message"] = exc.context.user_message
    return body


async def handle_preflight_error(request: Request, exc: PreflightError) -> JSONResponse:
    if exc.context.preflight_id is None:
        exc.context.preflight_id = _flow_id(request)
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        "%s on %s: %s", exc.code, request.url.path, exc.message,
        extra={
            "error_code": exc.code,
            "preflight_id": exc.context.preflight_id,
            "check": exc.context.check,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=preflight_error_body(exc))


def validation_error_body(exc: RequestValidationError) -> dict:
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"][1:]) or "body",
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    session_errors = [d for d in details if d["type"] == WALLET_SESSION_ERROR]
    if session_errors:
        code, message = "INVALID_WALLET_SESSION", session_errors[0]["message"]
    else:
        code, message = "VALIDATION_ERROR", "Invalid request data"
    return {
        "error": {
            "code": code,
            "message": message,
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": details,
        },
    }


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    body = validation_error_body(exc)
    logger.warning(
        "%s on %s", body["error"]["code"], request.url.path,
        extra={"error_code": body["error"]["code"], "preflight_id": _flow_id(request)},
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled %s on %s", type(exc).__name__, request.url.path,
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "preflight_id": _flow_id(request)},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )
