"""
api/main.py -- FastAPI application entry point for VaultDesk.

Run with:      uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for the configured browser origins
  2. log_requests       -- one log line per request with status and latency
  3. require_bearer     -- 401 on protected paths before the body is parsed

Lifespan handles startup (settings, stores, auth services) and shutdown
(dispose store engines) symmetrically. The signing key is read from settings
exactly once here and handed to TokenCodec; nothing reloads it afterwards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.contacts import router as contacts_router
from api.routes.passwords import router as passwords_router
from api.routes.tasks import router as tasks_router
from auth.dependencies import bearer_token
from auth.passwords import PasswordHasher
from auth.service import Authenticator, IdentityResolver
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.errors import AppError, Unauthenticated
from records.store import RecordStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vaultdesk.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    user_store: UserStore,
    records: RecordStore,
    hasher: PasswordHasher,
    codec: TokenCodec,
) -> None:
    """Attach stores and auth services to app.state.

    Shared by the real lifespan and the test lifespan so both build the
    Authenticator and IdentityResolver the same way.
    """
    app.state.user_store = user_store
    app.state.records = records
    app.state.token_codec = codec
    app.state.authenticator = Authenticator(user_store, hasher, codec)
    app.state.identity_resolver = IdentityResolver(user_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    logger.info("VaultDesk API starting up")
    settings = get_settings()
    wire_services(
        app,
        user_store=UserStore(settings.database_url),
        records=RecordStore(settings.database_url),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=TokenCodec(settings.secret_key, default_ttl=settings.token_expire_seconds),
    )
    logger.info("Stores and auth services initialized")

    yield

    app.state.records.close()
    app.state.user_store.close()
    logger.info("VaultDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VaultDesk API",
    description="Contacts, tasks and a personal password vault behind bearer-token auth.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Bearer pre-check middleware
#
# FastAPI parses and validates the request body before it solves route
# dependencies, so the get_principal guard alone would let an anonymous
# caller with a malformed body see a 400. This check rejects missing, bad or
# expired tokens on protected paths before routing. get_principal still runs
# on every protected route and is what resolves the identity.
# ---------------------------------------------------------------------------

PROTECTED_PREFIXES = ("/api/passwords", "/api/contacts", "/api/tasks", "/api/auth/me")


def _is_protected(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


@app.middleware("http")
async def require_bearer(request: Request, call_next):
    # CORS preflight carries no Authorization header.
    if request.method == "OPTIONS" or not _is_protected(request.url.path):
        return await call_next(request)
    codec: TokenCodec = request.app.state.token_codec
    try:
        codec.verify(bearer_token(request))
    except Unauthenticated as exc:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc)
        return _error_response(401, Unauthenticated.code, Unauthenticated.message)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Wall-clock time before and after call_next gives the latency.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# Added last so it wraps everything, including the 401s from require_bearer.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(passwords_router, prefix="/api", tags=["Passwords"])
app.include_router(contacts_router, prefix="/api", tags=["Contacts"])
app.include_router(tasks_router, prefix="/api", tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly. No handler copies exception text into the body: domain
# errors use their fixed class-level message, everything else gets the
# generic internal_error message.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, fields: dict | None = None) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message, fields=fields).model_dump(exclude_none=True),
    )
    response.headers["Cache-Control"] = "no-store"
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map a domain error to its status and fixed message.

    The exception's own text is logged (it may say *why* a token was
    rejected) but never sent to the client.
    """
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc)
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with one message per invalid field."""
    fields: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if error.get("type") == "json_invalid":
            # loc is ("body", <char offset>); the offset is not a field name.
            key = "body"
        else:
            # Drop the leading "body"/"query"/"path" marker unless it is all there is.
            key = ".".join(loc[1:]) or ".".join(loc) or "request"
        fields.setdefault(key, error.get("msg", "Invalid value."))
    return _error_response(400, "validation_error", "Request validation failed.", fields)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured error for framework-raised HTTP exceptions (404 route, 405 method)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Backing-store failure. Logged in full, reported as a bare 500."""
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the server log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state. No authentication.
# ---------------------------------------------------------------------------


@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
