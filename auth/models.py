"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserIdentity:
    """A stored credential record. Owned exclusively by CredentialStore.

    id is an opaque uuid4 hex string. password_hash is the bcrypt output and is
    excluded from repr() so it cannot leak through log lines or tracebacks.
    Records are immutable once registered.
    """

    id: str
    username: str
    password_hash: str = field(repr=False)
    created_at: str = ""

    def to_profile(self) -> UserProfile:
        return UserProfile(id=self.id, username=self.username, created_at=self.created_at)


@dataclass(frozen=True)
class UserProfile:
    """Caller-visible projection of a UserIdentity. Has no password_hash field."""

    id: str
    username: str
    created_at: str = ""
