"""Error taxonomy and normalized JSON error handlers."""

import logging
import builtins
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from codegolden.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.details = details or {}


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class InvalidTierError(ValidationError):
    """Upgrade or approval named a tier that cannot be granted."""
    code = "invalid_tier"


class UnauthenticatedError(AppError):
    code = "unauthenticated"
    status_code = 401


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class UpgradeRequiredError(PermissionError):
    """Raised by the access gate so clients can route users to the upgrade flow."""
    code = "upgrade_required"


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class RequestNotFoundError(NotFoundError):
    """No pending upgrade request exists for the identity."""
    code = "request_not_found"


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class ServiceError(AppError):
    """An outbound dependency (identity provider, model vendor) failed."""
    code = "service_error"
    status_code = 502


class ServiceUnavailableError(AppError):
    code = "service_unavailable"
    status_code = 503


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, details: Optional[Dict[str, Any]] = None) -> dict:
    error = {"code": code, "message": message, "request_id": request_id}
    if details:
        for key, value in details.items():
            error.setdefault(key, value)
    return {
        "error": error,
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.details)
    logger = logging.getLogger("codegolden")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("codegolden")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("codegolden")
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
