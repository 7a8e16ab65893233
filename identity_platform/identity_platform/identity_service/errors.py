"""
Error kinds and centralized error handlers for the identity service.

Every failure the service reports to a client is an ``AuthError`` carrying one
``AuthErrorKind``. The kind fixes the HTTP status, the machine readable
``error`` code and the default user-facing text, so handlers never inspect
exception messages to decide what to send.
"""
import logging
from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    DUPLICATE_EMAIL = "duplicate_email"
    UNSUPPORTED_SCHEME = "unsupported_scheme"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"
    PERSISTENCE_FAILURE = "persistence_failure"
    EMAIL_DELIVERY_FAILURE = "email_delivery_failure"
    NOT_FOUND = "not_found"


# kind -> (status code, message, feedback, error code, error description)
_ERROR_TABLE = {
    AuthErrorKind.INVALID_CREDENTIALS: (
        status.HTTP_400_BAD_REQUEST,
        "Invalid credentials",
        "The email or password provided is incorrect",
        "invalid_credentials",
        "The email or password provided is incorrect.",
    ),
    AuthErrorKind.DUPLICATE_EMAIL: (
        status.HTTP_409_CONFLICT,
        "Email already in use",
        "An account with this email address already exists",
        "duplicate_email",
        "The email address is already registered.",
    ),
    AuthErrorKind.UNSUPPORTED_SCHEME: (
        status.HTTP_401_UNAUTHORIZED,
        "Authentication Failure",
        "User is not authenticated.",
        "access_token_invalid",
        "Unsupported authentication scheme.",
    ),
    AuthErrorKind.TOKEN_INVALID: (
        status.HTTP_401_UNAUTHORIZED,
        "Authentication Failure",
        "The provided token is invalid.",
        "token_invalid",
        "The token is malformed, has been tampered with or has been revoked.",
    ),
    AuthErrorKind.TOKEN_EXPIRED: (
        status.HTTP_401_UNAUTHORIZED,
        "Authentication Failure",
        "Token validity period has expired.",
        "access_token_expired",
        "The provided token has expired. Please request a new token.",
    ),
    AuthErrorKind.PERSISTENCE_FAILURE: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "The request could not be completed. Please try again later.",
        "persistence_failure",
        "The operation could not be saved.",
    ),
    AuthErrorKind.EMAIL_DELIVERY_FAILURE: (
        status.HTTP_502_BAD_GATEWAY,
        "Email Delivery Failure",
        "The email could not be sent. Please try again later.",
        "email_delivery_failure",
        "The email service did not accept the message.",
    ),
    AuthErrorKind.NOT_FOUND: (
        status.HTTP_404_NOT_FOUND,
        "Not Found",
        "The requested resource was not found.",
        "not_found",
        "The requested resource does not exist.",
    ),
}


class AuthError(Exception):
    """Raised for every classified failure of the identity service."""

    def __init__(self, kind: AuthErrorKind, error_description: Optional[str] = None):
        status_code, message, feedback, error_code, default_description = _ERROR_TABLE[kind]
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.message = message
        self.feedback = feedback
        self.error_code = error_code
        self.error_description = error_description or default_description

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "feedback": self.feedback,
            "error": self.error_code,
            "error_description": self.error_description,
        }

    def __repr__(self) -> str:
        return f"AuthError(kind={self.kind.value!r}, error_description={self.error_description!r})"


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.info(
        "AuthError %s on %s %s: %s",
        exc.kind.value, request.method, request.url.path, exc.error_description
    )
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full detail stays in the server log, the client gets a generic body
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": "Internal Server Error",
            "feedback": "Something went wrong. Please try again later.",
            "error": "internal_error",
            "error_description": "An unexpected error occurred.",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
