"""
api/routes/auth.py -- Registration, login and identity REST endpoints.

Routes:
  POST /api/auth/register   -- create an identity; 201 with the user (no hash)
  POST /api/auth/login      -- verify credentials; 200 with bearer token + user
  GET  /api/auth/me         -- current identity (requires auth)

Security:
  Login returns the same 401 body for an unknown email and a wrong password;
  Authenticator raises one InvalidCredentials for both and runs bcrypt either
  way. Do NOT look the user up here first -- that re-introduces the timing
  difference.
  Register reports a duplicate email as 409. This does reveal that the email
  is registered; the behavior is kept as the clients expect it.
  Cache-Control: no-store on both responses that carry credentials.

Handlers are plain `def` so FastAPI runs them in its thread pool. bcrypt is
deliberately slow and must not run on the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import get_principal
from auth.models import Principal
from auth.service import Authenticator
from auth.store import UserStore
from core.errors import Unauthenticated

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public
# - GET  /api/auth/me:       requires auth (get_principal)
router = APIRouter()


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> UserResponse:
    """Create a new identity from an email and password.

    DuplicateEmail propagates to the AppError handler as 409.
    """
    authenticator: Authenticator = request.app.state.authenticator
    user = authenticator.register(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return UserResponse.from_user(user)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, response: Response, body: LoginRequest) -> LoginResponse:
    """Authenticate with email and password; return a bearer token.

    InvalidCredentials propagates to the AppError handler as 401
    bad_credentials, identical for every failure cause.
    """
    authenticator: Authenticator = request.app.state.authenticator
    result = authenticator.login(body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=UserResponse.from_user(result.user),
    )


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, principal: Principal = Depends(get_principal)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(principal.user_id)
    if user is None:
        # Deleted between the guard's lookup and this one.
        raise Unauthenticated("Identity vanished mid-request.")
    return UserResponse.from_user(user)
