import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app import config

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    """Base class for failures that end a request with a JSON error body."""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class Unauthenticated(AttendanceError):
    status_code = 401
    default_message = "Unauthorized: authentication required"


class Forbidden(AttendanceError):
    status_code = 403
    default_message = "Access denied"


class InvalidInput(AttendanceError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(AttendanceError):
    status_code = 404
    default_message = "Not found"


class InvalidOrExpired(AttendanceError):
    status_code = 400
    default_message = "Invalid or expired QR code"


class DuplicateRedemption(AttendanceError):
    status_code = 400
    default_message = "Attendance already marked for this session"


class InternalFault(AttendanceError):
    status_code = 500


def error_body(message: str, detail: Optional[str] = None) -> dict:
    body = {"success": False, "message": message}
    # Internal details are only echoed back while developing
    if detail and config.is_development():
        body["error"] = detail
    return body


async def attendance_error_handler(request: Request, exc: AttendanceError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} - {exc.message}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(part) for part in err["loc"][1:]) for err in exc.errors())
    return JSONResponse(
        status_code=400,
        content=error_body(f"Invalid request body: {fields}" if fields else "Invalid request body", str(exc)),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_body("Something went wrong!", str(exc)))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AttendanceError, attendance_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
