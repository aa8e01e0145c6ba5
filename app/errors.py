"""Error kinds raised by the services and rendered by the JSON error handlers."""

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException


class LibraryError(Exception):
    """Base class for failures reported to the caller."""

    status_code = 400
    message = "Request failed"

    def __init__(self, errors=None, message: str = None):
        if errors is None:
            errors = []
        elif isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        if message:
            self.message = message
        super().__init__("; ".join(self.errors) or self.message)

    def to_dict(self) -> dict:
        return {"errors": self.errors or [self.message], "message": self.message}


class NotFoundError(LibraryError):
    status_code = 404
    message = "Not found"


class ValidationError(LibraryError):
    status_code = 422
    message = "Validation failed"


class ForbiddenError(LibraryError):
    status_code = 403
    message = "Not authorized"


class UnauthenticatedError(LibraryError):
    status_code = 401
    message = "Authentication required"


def integrity_messages(exc: IntegrityError) -> list[str]:
    """Map a database constraint violation onto a field-level message."""
    detail = str(exc.orig).lower()
    if "book_serial_number" in detail:
        return ["Book serial number has already been taken"]
    if "email" in detail:
        return ["Email has already been taken"]
    if "uq_reservations_active_copy" in detail or "reservations.book_copy_id" in detail:
        return ["Book copy is already reserved"]
    return ["Record conflicts with existing data"]


def register_error_handlers(app) -> None:
    @app.errorhandler(LibraryError)
    def handle_library_error(exc):
        return exc.to_dict(), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        return {"errors": [exc.description], "message": exc.name}, exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        current_app.logger.exception("Unhandled error: %s", exc)
        return {
            "errors": ["Something went wrong. Please try again."],
            "message": "Internal server error",
        }, 500
