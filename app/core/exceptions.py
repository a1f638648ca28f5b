"""Domain errors and the FastAPI handlers that render them as JSON envelopes."""
import logging
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BloodBankError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BloodBankError):
    """Missing or malformed input, detected before any write."""


class NotFoundError(BloodBankError):
    status_code = status.HTTP_404_NOT_FOUND


class InvariantViolationError(BloodBankError):
    """The request is well formed but would break a business rule."""


class InsufficientInventoryError(InvariantViolationError):
    def __init__(self, message: str, current: int, requested: int):
        super().__init__(message)
        self.current = current
        self.requested = requested


class InvalidTransitionError(InvariantViolationError):
    pass


class DonorIneligibleError(InvariantViolationError):
    pass


class DuplicateRecordError(InvariantViolationError):
    pass


def _envelope(status_code: int, message: str, request: Request) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


async def blood_bank_exception_handler(request: Request, exc: BloodBankError):
    logger.info(
        f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}",
        extra={"request_id": getattr(request.state, "request_id", "N/A")}
    )
    return _envelope(exc.status_code, exc.message, request)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _envelope(exc.status_code, str(exc.detail), request)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", []) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    message = "Invalid request: " + "; ".join(errors) if errors else "Invalid request"
    return _envelope(status.HTTP_400_BAD_REQUEST, message, request)


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"request_id": getattr(request.state, "request_id", "N/A")}
    )
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server Error", request)
