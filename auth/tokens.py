"""
auth/tokens.py -- Stateless bearer token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the subject (user id), issue time
       and absolute expiry, signed with a secret injected at construction.
       There is no module-level secret: each SessionIssuer owns its own, so
       tests can run with distinct secrets side by side.

  Verification order: jwt.decode() verifies the JWS signature before it looks
       at any claim. Only after the signature checks out is `exp` compared
       with the current time, so an attacker cannot get a forged token
       classified as "expired" instead of "invalid".

  Algorithms are pinned to HS256 on decode. A token claiming "none" or an
       asymmetric algorithm is rejected as invalid.

  No revocation list: a token is valid until it expires. Logging out only
  clears the client's cookie.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import ExpiredToken, InvalidToken

logger = logging.getLogger("credcore.auth.tokens")

ALGORITHM = "HS256"
DEFAULT_EXPIRE_SECONDS = 24 * 60 * 60


class SessionIssuer:
    """Creates and verifies time-bounded bearer tokens bound to a user id.

    Usage:
        issuer = SessionIssuer(secret=settings.secret_key)
        token = issuer.issue(user.id)
        user_id = issuer.verify(token)   # raises InvalidToken / ExpiredToken
    """

    def __init__(self, secret: str, expire_seconds: int = DEFAULT_EXPIRE_SECONDS) -> None:
        if not secret:
            raise ValueError("A signing secret is required.")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive.")
        self._secret = secret
        self.expire_seconds = expire_seconds

    def __repr__(self) -> str:
        return f"SessionIssuer(algorithm={ALGORITHM!r}, expire_seconds={self.expire_seconds})"

    def issue(self, subject_id: str, issued_at: datetime | None = None) -> str:
        """Encode a signed JWT for subject_id expiring expire_seconds after issued_at.

        issued_at defaults to now (UTC). It is a parameter so tooling and tests
        can mint tokens for a fixed point in time.
        """
        issued = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": subject_id,
            "iat": issued,
            "exp": issued + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """Verify signature then expiry and return the embedded subject id.

        Raises ExpiredToken if the token is authentic but past its expiry,
        InvalidToken for every other failure.
        """
        if not token:
            raise InvalidToken()
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise ExpiredToken() from exc
        except JWTError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            raise InvalidToken() from exc
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidToken()
        return subject
