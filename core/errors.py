"""
core/errors.py -- Domain error taxonomy shared by auth/, records/ and api/.

Every class carries the HTTP status, a machine-readable code and a fixed,
client-safe message. api/main.py registers one exception handler for AppError
that turns these attributes into the response envelope, so raising code never
builds HTTP responses itself.

Messages are constants on purpose: nothing raised here may echo user input or
internal state back to the caller. InvalidCredentials is raised for both
"unknown email" and "wrong password" with no way to tell them apart.

Request validation (400) and infrastructure failures (500) are not AppErrors:
they arrive as fastapi RequestValidationError and sqlalchemy SQLAlchemyError
and are mapped in api/main.py.

Layer rule: no imports from the rest of the project.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map to a specific client-facing response."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        # message overrides the class default for server-side logs only;
        # the response always uses the class-level message.
        super().__init__(message or self.message)


class DuplicateEmail(AppError):
    status_code = 409
    code = "conflict"
    message = "Email already registered."


class InvalidCredentials(AppError):
    status_code = 401
    code = "bad_credentials"
    message = "Invalid email or password."


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class TokenError(Unauthenticated):
    """Base for token verification failures. Never leaves the auth layer in practice."""


class TokenInvalid(TokenError):
    """Malformed structure, bad encoding, or signature mismatch."""


class TokenExpired(TokenError):
    """Signature valid but expiresAt is not in the future."""


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "Insufficient permissions."


class NotFound(AppError):
    """Resource absent, or present but owned by someone else."""

    status_code = 404
    code = "not_found"
    message = "Resource not found."
