"""
Application errors and their JSON rendering.

Services raise these; the handlers registered in ``app.main`` turn them into
``{"error": {"kind": ..., "message": ..., "details": [...]}}`` so clients can
branch on ``kind`` instead of parsing text.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AuraError(Exception):
    kind = "internal"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class AuthenticationError(AuraError):
    kind = "authentication"
    status_code = 401


class ForbiddenError(AuraError):
    kind = "forbidden"
    status_code = 403


class ValidationError(AuraError):
    kind = "validation"
    status_code = 400


class NotFoundError(AuraError):
    kind = "not_found"
    status_code = 404


class ConflictError(AuraError):
    kind = "conflict"
    status_code = 409


class UpstreamError(AuraError):
    """A dependency (email provider, memory store) failed; the caller may retry."""
    kind = "upstream"
    status_code = 502
    retryable = True


class AgentError(UpstreamError):
    kind = "agent"
    status_code = 503


def error_body(kind: str, message: str, details: Optional[list] = None, retryable: bool = False) -> dict:
    body = {"kind": kind, "message": message, "details": details or []}
    if retryable:
        body["retryable"] = True
    return {"error": body}


async def aura_error_handler(request: Request, exc: AuraError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message, exc.details, exc.retryable),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("validation", "Validation failed", details))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = {401: "authentication", 403: "forbidden", 404: "not_found", 405: "method_not_allowed"}.get(
        exc.status_code, "http"
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(kind, str(exc.detail)))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("internal", "Internal server error"))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AuraError, aura_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
