"""
API request and response models for the SSO REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Request fields all have zero-value defaults ("" / 0). A missing field and an
empty field are the same thing to the gateway, and both get the specific
"<field> is required" message from the route's validate_* function instead
of a generic 422.

Ids outside the store's integer range are rejected by Pydantic with a 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Id ranges the store accepts: apps are 32-bit, users 64-bit.
MIN_APP_ID, MAX_APP_ID = -(2**31), 2**31 - 1
MIN_USER_ID, MAX_USER_ID = -(2**63), 2**63 - 1

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = ""
    password: str = ""
    app_id: int = Field(0, ge=MIN_APP_ID, le=MAX_APP_ID)


class IsAdminRequest(BaseModel):
    """Request body for POST /api/v1/auth/is-admin."""

    user_id: int = Field(0, ge=MIN_USER_ID, le=MAX_USER_ID)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int


class LoginResponse(BaseModel):
    """Signed session token for the requested app.

    The token is a compact HS256 JWS. Its claims are user_id, app_id, email
    and exp; the relying app verifies it with its own copy of the secret.
    """

    model_config = ConfigDict(frozen=True)

    token: str


class IsAdminResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_admin: bool


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
