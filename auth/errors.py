"""
auth/errors.py -- Error taxonomy for the credential and session core.

Every error carries a stable machine-readable `code` and a fixed default
message. Messages never include passwords, hashes, tokens, or the signing
secret -- callers may forward str(exc) to clients unchanged.

The mapping to HTTP status codes belongs to the transport layer
(api/main.py); nothing here knows about HTTP.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all errors raised by the auth core."""

    code: str = "auth_error"
    default_message: str = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    """A required field is missing, empty, or out of bounds."""

    code = "validation_error"
    default_message = "Request validation failed."


class DuplicateUsername(AuthError):
    code = "conflict"
    default_message = "A user with that username already exists."


class InvalidCredentials(AuthError):
    """Unknown username or wrong password -- deliberately indistinguishable."""

    code = "bad_credentials"
    default_message = "Invalid username or password."


class InvalidToken(AuthError):
    code = "invalid_token"
    default_message = "Invalid authentication token."


class ExpiredToken(AuthError):
    code = "token_expired"
    default_message = "Authentication token has expired."


class NotFound(AuthError):
    code = "not_found"
    default_message = "User not found."


class StorageError(AuthError):
    """The backing store failed. Never retried by the core."""

    code = "storage_error"
    default_message = "Credential store unavailable."
