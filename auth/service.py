"""
auth/service.py -- Composed authentication flows.

AuthService is the contract surface the transport layer calls:

  register(username, password)  -> UserProfile
  login(username, password)     -> token
  verify(token)                 -> subject id
  get_profile(subject_id)       -> UserProfile

Username enumeration:
  login() raises the same InvalidCredentials (same code, same message) for an
  unknown username and for a wrong password. It also always runs bcrypt --
  against a dummy hash when the user does not exist -- so response time does
  not tell the two cases apart either.

Every method is synchronous and CPU-bound where it hashes. HTTP callers run it
in a worker thread (FastAPI does this for plain `def` routes).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from auth.errors import InvalidCredentials, NotFound, ValidationError
from auth.models import UserProfile
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import CredentialStore
from auth.tokens import SessionIssuer

logger = logging.getLogger("credcore.auth")

MAX_USERNAME_LENGTH = 255


class AuthService:
    """Orchestrates CredentialStore, PasswordHasher and SessionIssuer."""

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, issuer: SessionIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        # Computed once with the configured work factor so an unknown-user
        # login costs the same as a wrong-password login.
        self._dummy_hash = hasher.hash("credcore_timing_dummy")

    def register(self, username: str, password: str) -> UserProfile:
        """Hash the password and store a new identity.

        Raises ValidationError for empty or oversized input and
        DuplicateUsername if the name is taken.
        """
        _validate_credentials(username, password)
        identity = self.store.register(username, self.hasher.hash(password))
        logger.info("Registered user id=%s", identity.id)
        return identity.to_profile()

    def login(self, username: str, password: str) -> str:
        """Return a bearer token for valid credentials, else raise InvalidCredentials."""
        identity = self.store.find_by_username(username) if username else None
        if identity is None:
            self.hasher.verify(password or "", self._dummy_hash)
            logger.info("Login failed")
            raise InvalidCredentials()
        if not self.hasher.verify(password or "", identity.password_hash):
            logger.info("Login failed")
            raise InvalidCredentials()
        logger.info("Login succeeded for user id=%s", identity.id)
        return self.issuer.issue(identity.id)

    def verify(self, token: str) -> str:
        return self.issuer.verify(token)

    def get_profile(self, subject_id: str) -> UserProfile:
        identity = self.store.find_by_id(subject_id)
        if identity is None:
            raise NotFound()
        return identity.to_profile()


def _validate_credentials(username: str, password: str) -> None:
    if not username or not username.strip():
        raise ValidationError("Username is required.")
    if not password:
        raise ValidationError("Password is required.")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_USERNAME_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
