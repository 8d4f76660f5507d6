"""
Error taxonomy for the Conduit API and the handlers that turn it into
HTTP responses.

Every client-facing failure is a ``ConduitError`` carrying its status code
and a message that is safe to show.  Handlers render them with the
RealWorld error envelope::

    {"errors": {"body": ["<message>"]}}

``ConfigurationFatal`` is deliberately not a ``ConduitError``: it is raised
during startup only and must stop the process instead of being rendered.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ConfigurationFatal(RuntimeError):
    """Missing signing secret or unreachable database at startup."""


class ConduitError(Exception):
    status_code: int = 400
    message: str = "bad request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class InvalidCredentials(ConduitError):
    status_code = 401
    message = "wrong email or password"


# ---------------------------------------------------------------------------
# Token errors: one generic client message, distinct classes for the logs
# ---------------------------------------------------------------------------

class TokenError(ConduitError):
    status_code = 401
    message = "not authorized"

    def __init__(self, reason: str = "") -> None:
        super().__init__()
        self.reason = reason


class TokenMalformed(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class TokenBadSignature(TokenError):
    pass


class TokenWrongAlgorithm(TokenError):
    pass


# ---------------------------------------------------------------------------
# Relationship / resource errors
# ---------------------------------------------------------------------------

class SelfReference(ConduitError):
    status_code = 422
    message = "cannot follow yourself"


class RelationNotFound(ConduitError):
    status_code = 404
    message = "relation endpoint not found"


class NotFound(ConduitError):
    status_code = 404
    message = "not found"


class Forbidden(ConduitError):
    status_code = 403
    message = "forbidden"


class Conflict(ConduitError):
    status_code = 409
    message = "already exists"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _envelope(status_code: int, *messages: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errors": {"body": list(messages)}})


async def conduit_error_handler(request: Request, exc: ConduitError) -> JSONResponse:
    if isinstance(exc, TokenError):
        logger.info(
            "Rejected credentials on %s %s: %s %s",
            request.method, request.url.path, type(exc).__name__, exc.reason,
        )
    return _envelope(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return _envelope(422, *messages)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(500, "internal server error")


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ConduitError, conduit_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
