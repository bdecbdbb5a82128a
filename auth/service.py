"""
auth/service.py -- Registration, login, and per-request identity resolution.

Authenticator orchestrates the store, the hasher and the token codec. It is
the only place that decides what a login failure looks like, and it makes
"no such email" and "wrong password" the same InvalidCredentials, with the
same bcrypt cost, so neither the response nor its timing tells an attacker
which emails are registered.

IdentityResolver turns verified token claims into a Principal. It hits the
store on every call: a token is only as valid as the identity it names, so a
user deleted after login is locked out on their next request.

Every method here is blocking (bcrypt, SQL). Callers on the event loop must
run them in a worker thread; the API routes do this by being plain `def`.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from auth.models import DEFAULT_PERMISSIONS, Principal, User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenClaims, TokenCodec
from core.errors import DuplicateEmail, InvalidCredentials, Unauthenticated

logger = logging.getLogger("vaultdesk.auth")


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int
    user: User


class Authenticator:
    """Credential registration and verification.

    Usage:
        auth = Authenticator(store, PasswordHasher(), codec)
        user = auth.register("a@x.com", "hunter2")
        result = auth.login("a@x.com", "hunter2")   # LoginResult(token, expires_in, user)
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, codec: TokenCodec) -> None:
        self.store = store
        self.hasher = hasher
        self.codec = codec

    def register(self, email: str, password: str) -> User:
        """Create a new identity. Raises DuplicateEmail if the email is taken."""
        if self.store.exists_by_email(email):
            logger.warning("Registration rejected -- email already registered: %s", email)
            raise DuplicateEmail()

        user = User(email=email, hashed_password=self.hasher.hash(password))
        try:
            saved = self.store.save(user)
        except IntegrityError as exc:
            # A concurrent registration won the race between the existence
            # check and the INSERT; the UNIQUE constraint caught it.
            logger.warning("Registration lost race on unique email: %s", email)
            raise DuplicateEmail() from exc

        logger.info("Registered user id=%s", saved.id)
        return saved

    def login(self, email: str, password: str) -> LoginResult:
        """Verify credentials and issue a token.

        Raises InvalidCredentials for unknown email and wrong password alike.
        """
        logger.info("Login attempt for email: %s", email)
        user = self.store.find_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify_dummy(password)
            logger.warning("Login failed for email: %s", email)
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.hashed_password):
            logger.warning("Login failed for email: %s", email)
            raise InvalidCredentials()

        token = self.codec.issue(
            str(user.id),
            email=user.email,
            permissions=DEFAULT_PERMISSIONS,
        )
        logger.info("Login successful for user id=%s", user.id)
        return LoginResult(token=token, expires_in=self.codec.default_ttl, user=user)


class IdentityResolver:
    """Map a verified subject claim to the live identity it names."""

    def __init__(self, store: UserStore) -> None:
        self.store = store

    def resolve(self, claims: TokenClaims) -> Principal:
        try:
            user_id = int(claims.subject)
        except ValueError as exc:
            raise Unauthenticated("Token subject is not a user id.") from exc

        user = self.store.get_by_id(user_id)
        if user is None:
            logger.info("Token presented for vanished user id=%s", user_id)
            raise Unauthenticated("Token subject no longer exists.")
        return Principal(user_id=user.id, email=user.email, permissions=claims.permissions)
