"""Custom exceptions and their HTTP rendering."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ClientDeskError(Exception):
    """Base exception for the application."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ClientDeskError):
    """Raised when a required field is missing or malformed."""

    status_code = 400


class NotFoundError(ClientDeskError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class ConflictError(ClientDeskError):
    """Raised on duplicate unique fields or invalid state transitions."""

    status_code = 400


class UnauthorizedError(ClientDeskError):
    """Raised when a credential token is missing or invalid."""

    status_code = 401


class DeliveryError(ClientDeskError):
    """Raised by a channel adapter when the provider rejects a message."""

    status_code = 502


def register_error_handlers(app: FastAPI) -> None:
    """Render every failure as {"message": ...}."""

    @app.exception_handler(ClientDeskError)
    async def _domain_error(request: Request, exc: ClientDeskError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code, content={"message": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def _schema_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        return JSONResponse(
            status_code=400,
            content={"message": message, "errors": _jsonable(errors)},
        )

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": str(exc)},
        )


def _jsonable(errors: list) -> list:
    # ctx and input may hold arbitrary objects
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
