"""Domain error taxonomy and HTTP exception handlers.

Services raise `DomainError` subclasses carrying a stable `kind` and a
dotted machine `code` (e.g. ``invite.already_redeemed``). The HTTP layer
maps kinds to status codes; clients localize on `code`, never on `detail`.
"""

from enum import Enum

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Failure categories exposed to callers."""

    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    EXPIRED = "expired"
    ALREADY_REDEEMED = "already_redeemed"
    INTERNAL = "internal"


ERROR_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.EXPIRED: 410,
    ErrorKind.ALREADY_REDEEMED: 409,
    ErrorKind.INTERNAL: 500,
}


class DomainError(Exception):
    """Base class for typed failures of the membership core."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, code: str, detail: str | None = None):
        self.code = code
        self.detail = detail or code
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS_CODES[self.kind]

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "kind": self.kind.value, "detail": self.detail}


class ForbiddenError(DomainError):
    """Actor lacks rank or hit a self-action rule. Never retried."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(DomainError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(DomainError):
    """A uniqueness or cardinality invariant would be violated."""

    kind = ErrorKind.CONFLICT


class InvalidStateError(DomainError):
    """Operation not legal in the entity's current state."""

    kind = ErrorKind.INVALID_STATE


class ExpiredError(DomainError):
    kind = ErrorKind.EXPIRED


class AlreadyRedeemedError(DomainError):
    kind = ErrorKind.ALREADY_REDEEMED


class InternalError(DomainError):
    """Retry budget exhausted (code generation, optimistic writes, cascade)."""

    kind = ErrorKind.INTERNAL


class StaleWriteError(Exception):
    """A version-guarded write lost a race; the unit of work should be retried.

    Internal to the persistence layer; never reaches callers.
    """


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        request_id = correlation_id.get()
        if exc.kind is ErrorKind.INTERNAL:
            logger.error(
                "Domain operation failed",
                code=exc.code,
                request_id=request_id,
                path=request.url.path,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={**exc.to_dict(), "request_id": request_id},
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
