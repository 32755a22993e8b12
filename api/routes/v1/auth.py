"""
api/routes/v1/auth.py -- Registration, login and admin lookup endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account; 201 {user_id}
  POST /api/v1/auth/login     -- verify credentials; 200 {token} for app_id
  POST /api/v1/auth/is-admin  -- admin flag lookup; 200 {is_admin}

All three are public: they are the SSO service's own API, called by relying
applications on behalf of their users.

Each handler does the same three things:
  1. validate_*() -- presence/shape checks, raised as INVALID_ARGUMENT
     before the core runs.
  2. Call AuthService with a RequestContext carrying the request deadline.
  3. Map any AuthError through api.status.raise_for_auth_error().

Handlers are plain `def` so FastAPI runs them in its thread pool: bcrypt
blocks for tens of milliseconds and must not run on the event loop.

Security:
  Login never distinguishes unknown email, wrong password and unknown app;
  the core collapses all three into "invalid credentials".
  Cache-Control: no-store on login responses, which carry a bearer token.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import (
    IsAdminRequest,
    IsAdminResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from api.status import GatewayError, Status, raise_for_auth_error
from auth.errors import AuthError
from auth.service import AuthService
from auth.tokens import MAX_PASSWORD_BYTES
from core.context import RequestContext

router = APIRouter()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_credentials(email: str, password: str) -> None:
    if not email:
        raise GatewayError(Status.INVALID_ARGUMENT, "email is required")
    if not password:
        raise GatewayError(Status.INVALID_ARGUMENT, "password is required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise GatewayError(Status.INVALID_ARGUMENT, "password is too long")


def validate_register_request(body: RegisterRequest) -> None:
    _validate_credentials(body.email, body.password)


def validate_login_request(body: LoginRequest) -> None:
    _validate_credentials(body.email, body.password)
    if body.app_id == 0:
        raise GatewayError(Status.INVALID_ARGUMENT, "app_id is required")


def validate_is_admin_request(body: IsAdminRequest) -> None:
    if body.user_id == 0:
        raise GatewayError(Status.INVALID_ARGUMENT, "user_id is required")
    if body.user_id < 0:
        raise GatewayError(Status.INVALID_ARGUMENT, "invalid user_id")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _context(request: Request) -> RequestContext:
    """Per-request context with the configured deadline and the request id."""
    timeout: float = request.app.state.settings.request_timeout_seconds
    request_id = getattr(request.state, "request_id", None)
    return RequestContext.with_timeout(timeout, request_id=request_id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a user account and return its id."""
    validate_register_request(body)
    try:
        user_id = _service(request).register(_context(request), body.email, body.password)
    except AuthError as err:
        raise_for_auth_error("register", err)
    return RegisterResponse(user_id=user_id)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify email/password and return a token signed for body.app_id."""
    validate_login_request(body)
    try:
        token = _service(request).login(_context(request), body.email, body.password, body.app_id)
    except AuthError as err:
        raise_for_auth_error("login", err)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/is-admin", response_model=IsAdminResponse)
def is_admin(request: Request, body: IsAdminRequest) -> IsAdminResponse:
    """Return whether the user holds admin privileges."""
    validate_is_admin_request(body)
    try:
        flag = _service(request).is_admin(_context(request), body.user_id)
    except AuthError as err:
        raise_for_auth_error("is_admin", err)
    return IsAdminResponse(is_admin=flag)
