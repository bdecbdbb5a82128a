"""
auth/store.py -- SQLAlchemy Core persistence layer for user identities.

Pattern: Repository + Data Mapper (same as records/store.py).
UserStore is the repository; _row_to_user is the mapper.
Service and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database, not only by exists_by_email().
  Two registrations racing past the existence check are resolved here: the
  second INSERT raises IntegrityError, which auth.service.Authenticator turns
  into DuplicateEmail.

Absence is returned as None. Every other failure surfaces as a
sqlalchemy.exc.SQLAlchemyError for the API layer to reduce to a generic 500.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

from dataclasses import replace

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select, text
from sqlalchemy.engine import Engine

from auth.models import User
from core.config import get_settings
from core.db import make_engine, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User identities.

    Usage:
        store = UserStore()
        user = store.save(User(email="a@x.com", hashed_password=hasher.hash("secret")))
        store.find_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == _normalize(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def exists_by_email(self, email: str) -> bool:
        with self.engine.connect() as conn:
            count = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.email == _normalize(email))
            ).scalar()
        return (count or 0) > 0

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, user: User) -> User:
        """Insert a new user (id is None) or update an existing one.

        Returns the stored record with id and created_at filled in.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        Callers should treat that as a lost registration race.
        """
        email = _normalize(user.email)
        username = user.username or email
        if user.id is None:
            created_at = now_iso()
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=email,
                        username=username,
                        hashed_password=user.hashed_password,
                        created_at=created_at,
                    )
                )
                conn.commit()
            return replace(
                user,
                id=result.inserted_primary_key[0],
                email=email,
                username=username,
                created_at=created_at,
            )

        # Email is immutable once registered; only these fields change.
        with self.engine.connect() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(username=username, hashed_password=user.hashed_password)
            )
            conn.commit()
        return replace(user, email=email, username=username)

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Administrative only -- no route exposes this. Tokens already issued
        to the user stop working on their next request because the identity
        resolver re-checks existence every time.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _normalize(email: str) -> str:
    return email.strip().lower()


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
