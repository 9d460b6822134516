import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for every failure an engine operation can report."""

    status_code = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(LedgerError):
    """Bad input: blank reason, non-positive amount, amount over a ceiling."""


class ConflictError(ValidationError):
    status_code = 409


class NotFoundError(LedgerError):
    status_code = 404


class AuthorizationError(LedgerError):
    status_code = 403


class PersistenceError(LedgerError):
    """The backing store could not be read or written. Always fatal."""

    status_code = 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:  # type: ignore[override]
        if isinstance(exc, PersistenceError):
            logger.error("Persistence failure on %s: %s", request.url.path, exc.message)
        payload: Dict[str, Any] = {"detail": exc.message, "path": str(request.url)}
        if exc.context:
            payload["context"] = exc.context
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation failed.",
                "errors": exc.errors(),
                "path": str(request.url),
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error.",
                "path": str(request.url),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "path": str(request.url)}
        if exc.headers:
            payload["headers"] = exc.headers
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)
