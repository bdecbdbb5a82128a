"""
auth/tokens.py -- Signed bearer token codec.

Security design decisions:
  JWT: python-jose with HS256. A token is three dot-joined base64url segments
       (header, payload, signature). The payload carries the subject (user id
       as a string), the email, the permission scope, iat and exp.

  Signature first, expiry second: python-jose recomputes the HMAC over the
       exact received header+payload and compares it in constant time. Its
       own exp check is switched off and expiry is evaluated here, only after
       the signature has been accepted, against an injectable clock. That
       keeps ttl=0 deterministically expired (python-jose treats exp == now
       as still valid) and keeps expiry testable without sleeping.

  Canonical encoding: every segment must round-trip through base64url
       unchanged. Standard base64 decoders ignore the spare low bits of the
       final character, so without this check a token whose last character
       was altered could still verify.

  Signing key: passed in by the caller (the application lifespan reads it
       from core.config once at startup). The codec never reads settings and
       the key cannot be swapped after construction.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from auth.models import Permission
from core.errors import TokenExpired, TokenInvalid

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    """The verified content of a token."""

    subject: str
    issued_at: int
    expires_at: int
    email: str | None = None
    permissions: frozenset[Permission] = field(default_factory=frozenset)


class TokenCodec:
    """Issue and verify HS256 bearer tokens.

    Usage:
        codec = TokenCodec(settings.secret_key, default_ttl=settings.token_expire_seconds)
        token = codec.issue("42", email="a@x.com", permissions=DEFAULT_PERMISSIONS)
        claims = codec.verify(token)   # TokenClaims, or raises TokenInvalid / TokenExpired
    """

    def __init__(
        self,
        secret_key: str,
        default_ttl: int = 86400,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a non-empty signing key.")
        self._key = secret_key
        self.default_ttl = default_ttl
        self._clock = clock

    def issue(
        self,
        subject: str,
        ttl: int | None = None,
        email: str | None = None,
        permissions: Iterable[Permission] = (),
    ) -> str:
        """Encode and sign a token for subject, valid for ttl seconds from now."""
        duration = self.default_ttl if ttl is None else ttl
        if duration < 0:
            raise ValueError("ttl must not be negative.")
        issued_at = int(self._clock())
        payload = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + duration,
            "scope": sorted(p.value for p in permissions),
        }
        if email is not None:
            payload["email"] = email
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Return the claims of a valid token.

        Raises TokenInvalid for anything structurally wrong or badly signed,
        TokenExpired for a correctly signed token past its exp.
        """
        _check_segments(token)
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise TokenInvalid(f"Token rejected: {exc}") from exc

        claims = _parse_claims(payload)
        if self._clock() >= claims.expires_at:
            raise TokenExpired("Token expired.")
        return claims

    @staticmethod
    def inspect(token: str) -> dict:
        """Decode header and payload WITHOUT checking the signature.

        For debugging and logging only. Nothing returned here may be used
        for an authorization decision.
        """
        try:
            return {
                "header": jwt.get_unverified_header(token),
                "payload": jwt.get_unverified_claims(token),
            }
        except JWTError as exc:
            raise TokenInvalid(f"Token not decodable: {exc}") from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_segments(token: str) -> None:
    if not isinstance(token, str):
        raise TokenInvalid("Token must be a string.")
    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        raise TokenInvalid("Token must have three non-empty segments.")
    for segment in segments:
        try:
            raw = segment.encode("ascii")
            canonical = base64url_encode(base64url_decode(raw))
        except (UnicodeEncodeError, ValueError) as exc:
            raise TokenInvalid("Token segment is not base64url.") from exc
        if canonical != raw:
            raise TokenInvalid("Token segment is not canonical base64url.")


def _parse_claims(payload: dict) -> TokenClaims:
    subject = payload.get("sub")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    email = payload.get("email")
    scope = payload.get("scope", [])

    if not isinstance(subject, str) or not subject:
        raise TokenInvalid("Token has no subject.")
    for value in (issued_at, expires_at):
        # bool is an int subclass; reject it explicitly.
        if not isinstance(value, int) or isinstance(value, bool):
            raise TokenInvalid("Token timestamps must be integers.")
    if email is not None and not isinstance(email, str):
        raise TokenInvalid("Token email must be a string.")
    if not isinstance(scope, list):
        raise TokenInvalid("Token scope must be a list.")
    try:
        permissions = frozenset(Permission(p) for p in scope)
    except ValueError as exc:
        raise TokenInvalid("Token carries an unknown permission.") from exc

    return TokenClaims(
        subject=subject,
        issued_at=issued_at,
        expires_at=expires_at,
        email=email,
        permissions=permissions,
    )
