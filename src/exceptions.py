import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TicketingError(Exception):
    """Base class for errors that map onto a structured API response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "InternalError"

    def __init__(self, message: str = "Request failed"):
        self.message = message
        super().__init__(message)


class NotFoundError(TicketingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NotFound"


class CapacityExceededError(TicketingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "CapacityExceeded"


class UnauthorizedError(TicketingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "Unauthorized"


class ForbiddenError(TicketingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "Forbidden"


class ConflictError(TicketingError):
    status_code = status.HTTP_409_CONFLICT
    code = "Conflict"


class ValidationFailedError(TicketingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "ValidationFailed"


class ArtifactGenerationError(TicketingError):
    """The booking is committed but its ticket image could not be produced."""

    code = "ArtifactGenerationFailed"

    def __init__(self, message: str = "Ticket artifact could not be generated", booking_id: str = None):
        self.booking_id = booking_id
        super().__init__(message)


class BookingPersistenceError(TicketingError):
    code = "BookingPersistenceFailed"


class EncodingError(Exception):
    """Payload cannot be encoded into a QR image."""


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ArtifactGenerationError) and exc.booking_id:
        content["booking_id"] = exc.booking_id
    return JSONResponse(status_code=exc.status_code, content=content)


HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: ValidationFailedError.code,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError.code,
    status.HTTP_403_FORBIDDEN: ForbiddenError.code,
    status.HTTP_404_NOT_FOUND: NotFoundError.code,
    status.HTTP_405_METHOD_NOT_ALLOWED: "MethodNotAllowed",
    status.HTTP_409_CONFLICT: ConflictError.code,
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, "InternalError" if exc.status_code >= 500 else "RequestFailed")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": code},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "code": ValidationFailedError.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "InternalError"},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(TicketingError, ticketing_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
