"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in records/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Permission(str, Enum):
    """Capabilities carried in a token's "scope" claim."""

    passwords_read = "passwords:read"
    passwords_write = "passwords:write"
    contacts_read = "contacts:read"
    contacts_write = "contacts:write"
    tasks_read = "tasks:read"
    tasks_write = "tasks:write"


# Every registered identity receives the full set. There is no admin tier.
DEFAULT_PERMISSIONS: frozenset[Permission] = frozenset(Permission)


@dataclass
class User:
    """A registered identity.

    email is the unique login key, stored lower-cased. username defaults to
    the email address. hashed_password is a bcrypt digest and is never
    serialized into an API response.

    id is None before the record is written to the database.
    """

    email: str
    hashed_password: str
    username: str = ""
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated requester, produced by auth.dependencies.get_principal().

    user_id is the only value handlers may use to scope ownership filters.
    """

    user_id: int
    email: str
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    def can(self, permission: Permission) -> bool:
        return permission in self.permissions
