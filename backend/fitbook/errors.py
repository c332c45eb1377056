# backend/fitbook/errors.py
"""
Problem-JSON error envelopes for every error the API returns.

Shape: ``{type, title, status, detail, instance, code?, errors?}``.
Domain exceptions reach the handlers as HTTPExceptions whose ``detail`` is
``{"message", "code", "details"}``; plain string details are passed through.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import (
    DomainException,
    TransientRepositoryException,
    TransientStoreException,
)

logger = logging.getLogger(__name__)

STATUS_TITLES: Dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def problem_response(
    request: Request,
    status_code: int,
    detail: Any = None,
    *,
    code: Optional[str] = None,
    errors: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Render one problem document for ``request``."""
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": STATUS_TITLES.get(status_code, "Error"),
        "status": status_code,
        "detail": detail or "",
        "instance": request.url.path,
    }
    if code:
        body["code"] = code
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(body, status_code=status_code, headers=dict(headers or {}))


def _from_http_detail(
    request: Request, status_code: int, detail: Any, headers: Optional[Mapping[str, str]]
) -> JSONResponse:
    if not isinstance(detail, dict):
        text = None if detail is None else str(detail)
        return problem_response(request, status_code, text, headers=headers)

    code = detail.get("code")
    message = detail.get("message") or detail.get("detail")
    return problem_response(
        request,
        status_code,
        message if isinstance(message, str) else None,
        code=code if isinstance(code, str) else None,
        errors=detail.get("details") or detail.get("errors"),
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    # fastapi.HTTPException subclasses Starlette's, so one handler covers both
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _from_http_detail(
            request, exc.status_code, exc.detail, getattr(exc, "headers", None)
        )

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        # Routes convert domain errors themselves; this catches dependency-level ones
        http_exc = exc.to_http_exception()
        return _from_http_detail(request, http_exc.status_code, http_exc.detail, http_exc.headers)

    @app.exception_handler(TransientRepositoryException)
    async def transient_store_handler(
        request: Request, exc: TransientRepositoryException
    ) -> JSONResponse:
        logger.warning(
            "Transient store failure", extra={"path": request.url.path, "error": str(exc)}
        )
        http_exc = TransientStoreException().to_http_exception()
        return _from_http_detail(request, http_exc.status_code, http_exc.detail, http_exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return problem_response(
            request,
            422,
            "Request validation failed",
            code="validation_error",
            errors=exc.errors(),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return problem_response(
            request, 500, "Internal Server Error", code="internal_server_error"
        )
