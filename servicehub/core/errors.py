"""
Error taxonomy and shared error-handling helpers.

Services raise the domain errors defined here; `register_error_handlers`
maps them to JSON responses. Anything raised by the datastore is logged
and surfaced as an opaque `InternalError`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError


class ServiceHubError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(ServiceHubError):
    status_code = 400
    default_detail = "Validation failed"

    def __init__(self, detail: str | None = None, errors: Iterable[str] | None = None) -> None:
        super().__init__(detail)
        self.errors = list(errors or [])

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthError(ServiceHubError):
    status_code = 401
    default_detail = "Authentication required"


class ForbiddenError(ServiceHubError):
    status_code = 403
    default_detail = "Forbidden"


class InsufficientClearanceError(ForbiddenError):
    default_detail = "Insufficient clearance level"


class SelfActionError(ForbiddenError):
    default_detail = "Cannot perform this action on your own account"


class NotFoundError(ServiceHubError):
    status_code = 404
    default_detail = "Not found"


class DuplicateError(ServiceHubError):
    status_code = 409
    default_detail = "Already exists"


class InternalError(ServiceHubError):
    status_code = 500
    default_detail = "Internal server error"


def _format_extra(extra: dict | None) -> str:
    if not extra:
        return ""
    parts: list[str] = []
    for key, value in extra.items():
        if value is None:
            continue
        parts.append(f"{key}={value}")
    return f" {' '.join(parts)}" if parts else ""


def log_exception(logger: logging.Logger, msg: str, *, extra: dict | None = None, exc: Exception | None = None) -> None:
    """
    Log an exception with context. Uses logger.exception for stack traces.
    """
    suffix = _format_extra(extra)
    if exc is not None:
        logger.error(f"{msg}{suffix}: {exc}", exc_info=exc)
        return
    logger.exception(f"{msg}{suffix}")


def register_error_handlers(app: FastAPI) -> None:
    logger = logging.getLogger("errors")

    @app.exception_handler(ServiceHubError)
    async def _domain_error(request: Request, exc: ServiceHubError) -> JSONResponse:
        if exc.status_code >= 500:
            log_exception(logger, "Request failed", extra={"path": request.url.path}, exc=exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        log_exception(logger, "Datastore failure", extra={"path": request.url.path}, exc=exc)
        opaque = InternalError()
        return JSONResponse(status_code=opaque.status_code, content=opaque.to_dict())
