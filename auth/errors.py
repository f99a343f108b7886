"""
auth/errors.py -- Typed failures raised by the auth package.

Two families:

  AuthError and subclasses -- domain errors that cross the service boundary.
      Each carries the HTTP status code and a client-safe message, so the
      api/ exception handler can render {statusCode, message, errors?}
      without a lookup table.

  TokenError and subclasses -- raised by TokenIssuer.verify(). The service
      never lets these escape; every TokenError becomes UnauthorizedError.

DuplicateEmailError is the store's typed uniqueness signal. The service
turns it into ConflictError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for errors surfaced to the transport boundary."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AuthError):
    """Inbound payload failed validation. errors lists every violation."""

    status_code = 400
    default_message = "Validation failed."


class ConflictError(AuthError):
    status_code = 409
    default_message = "A user with that email already exists."


class InvalidCredentialsError(AuthError):
    """Login failed. Deliberately does not say which half was wrong."""

    status_code = 401
    default_message = "Invalid email or password."


class UnauthorizedError(AuthError):
    """Missing, expired, forged or rotated-out token."""

    status_code = 401
    default_message = "Unauthorized."


class ServiceUnavailableError(AuthError):
    """The credential store could not be reached or failed mid-operation."""

    status_code = 503
    default_message = "Authentication service temporarily unavailable."


class DuplicateEmailError(Exception):
    """Raised by UserStore.create_user() when the email is already registered."""


class TokenError(Exception):
    """Base class for token verification failures."""


class ExpiredTokenError(TokenError):
    pass


class TokenSignatureError(TokenError):
    pass


class MalformedTokenError(TokenError):
    pass
