"""Domain errors and the FastAPI handlers that render them as ``{"error": ...}``."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ReservationError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    """Malformed, missing or out-of-range input."""


class NotFoundError(ReservationError):
    """A referenced user, resource or booking does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ReservationError):
    """The requested slot overlaps an existing reservation. Retry with another time or resource."""

    status_code = status.HTTP_409_CONFLICT


class AuthError(ReservationError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(ReservationError):
    status_code = status.HTTP_403_FORBIDDEN


class InfraError(ReservationError):
    """Storage or other unexpected failure; the message never carries backend details."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)


def reservation_error_handler(_: Request, exc: ReservationError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def install_error_handlers(app: FastAPI) -> None:
    """Attach the domain error handlers to an app."""

    app.add_exception_handler(ReservationError, reservation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
