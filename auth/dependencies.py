"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

get_principal() is the access-control guard. Protected routers attach it at
the router level, so it runs before any handler on that router and a request
without a valid bearer token never reaches handler code. Handlers that need
the identity also declare it as a parameter; FastAPI caches dependencies per
request, so the token is verified once.

Only the Authorization: Bearer <token> header is accepted. There is no cookie
or API-key fallback.

The returned Principal is the only identity a handler may use. Ids sent by
the client in a body or query string are never trusted for authorization.

Both helpers are plain `def`: FastAPI runs them in its worker thread pool,
which keeps token verification and the store round-trip off the event loop.

Layer rule: may import from fastapi (for Depends/Request) because this module
is part of the FastAPI dependency injection system. No imports from api/ or
records/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import Permission, Principal
from auth.service import IdentityResolver
from auth.tokens import TokenCodec
from core.errors import Forbidden, TokenError, Unauthenticated


def bearer_token(request: Request) -> str:
    """Extract the raw token from the Authorization header or raise Unauthenticated."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise Unauthenticated("Missing or malformed Authorization header.")
    return token.strip()


def get_principal(request: Request) -> Principal:
    """Require a valid bearer token naming a live identity.

    Use as a FastAPI dependency:
        router = APIRouter(dependencies=[Depends(get_principal)])

        @router.get("/protected")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    token = bearer_token(request)
    codec: TokenCodec = request.app.state.token_codec
    resolver: IdentityResolver = request.app.state.identity_resolver
    try:
        claims = codec.verify(token)
    except TokenError as exc:
        # Collapse invalid and expired into one response.
        raise Unauthenticated(str(exc)) from exc
    return resolver.resolve(claims)


def require_permission(permission: Permission) -> Callable[..., Principal]:
    """Return a dependency that also requires permission in the token scope.

    Use as a FastAPI dependency:
        @router.delete("/passwords/{id}")
        def route(principal: Principal = Depends(require_permission(Permission.passwords_write))): ...
    """

    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.can(permission):
            raise Forbidden(f"Missing permission {permission.value}.")
        return principal

    return dependency
