"""Error taxonomy and structured error responses.

Every failure that reaches a client is rendered as the same envelope:
``{"ok": false, "error": {"code", "message", "details"}, "request_id"}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("ajl")


class LedgerError(Exception):
    """Base class for every error the engine reports to a caller."""

    code = "LEDGER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(LedgerError):
    """Missing, malformed or out-of-range input. Never mutates."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(LedgerError):
    """A referenced id does not exist."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(LedgerError):
    """The persistence layer failed to read or write."""

    code = "STORAGE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CollaboratorUnavailable(LedgerError):
    """The external advisory service is disabled or unreachable."""

    code = "COLLABORATOR_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def error_from_dict(data: dict) -> LedgerError:
    """Rebuild a typed error from its ``to_dict()`` form."""
    code = data.get("code")
    for cls in (ValidationError, NotFoundError, StorageError, CollaboratorUnavailable):
        if cls.code == code:
            return cls(data.get("message", ""), data.get("details"))
    return LedgerError(data.get("message", ""), data.get("details"))


def from_pydantic(exc, message: str = "Invalid input") -> ValidationError:
    """Convert a pydantic validation error into a ValidationError."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    if errors:
        first = errors[0]
        field = ".".join(first["loc"])
        message = f"{field}: {first['msg']}" if field else first["msg"]
    return ValidationError(message, {"errors": errors})


def error_response(request: Request, exc: LedgerError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.to_dict(), "request_id": request_id},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError):
        if isinstance(exc, StorageError):
            logger.error("storage failure path=%s: %s", request.url.path, exc.message)
        return error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", None)
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "ok": False,
                "error": {"code": code, "message": str(exc.detail), "details": {}},
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(request, from_pydantic(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error": {"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
                "request_id": request_id,
            },
        )
