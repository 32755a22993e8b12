"""
auth/tokens.py -- Password hashing and session token issuance.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). Cost is passed in by
       the caller (Settings.bcrypt_rounds) because it is the main throughput
       knob of the whole service: every registration and every login pays for
       one hash. 10 rounds lands in the tens of milliseconds on current CPUs.

  Tokens: python-jose with HS256. Each token is signed with the secret of the
       application named in its own app_id claim. This module only issues;
       relying applications verify with their copy of the secret.

  Timing: AuthService keeps a dummy hash at its own cost and checks the
       password against it when the email is unknown, so response time does
       not reveal whether an account exists.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import math
import time
from datetime import timedelta

import bcrypt
from jose import JWTError, jwt

from auth.errors import TokenSigningError
from auth.models import App, User

ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes; the gateway rejects anything longer.
MAX_PASSWORD_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 10) -> bytes:
    """Return a salted bcrypt hash of the plaintext password.

    Raises ValueError if the password is empty or longer than 72 bytes.
    """
    encoded = plain.encode("utf-8")
    if not encoded:
        raise ValueError("password must not be empty")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds))


def verify_password(plain: str, hashed: bytes | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    An empty password or a missing hash never matches, and bcrypt is not
    called for them.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed)
    except ValueError:
        # Malformed stored hash or over-long password.
        return False


# ---------------------------------------------------------------------------
# Token issuance
# ---------------------------------------------------------------------------


def issue_token(user: User, app: App, lifetime: timedelta, now: float | None = None) -> str:
    """Build and sign a session token for `user` scoped to `app`.

    Claims:
        user_id -- the user's store id
        app_id  -- the app the token is valid for
        email   -- the user's email as stored
        exp     -- Unix seconds, now + lifetime rounded up

    Args:
        now: Issuance instant in Unix seconds. Defaults to time.time();
             tests pass a fixed value.

    Raises TokenSigningError if the lifetime is not positive, the app has no
    secret, or signing itself fails.
    """
    if lifetime <= timedelta(0):
        raise TokenSigningError("token lifetime must be positive")
    if not app.secret:
        raise TokenSigningError(f"app {app.id} has an empty signing secret")

    issued_at = time.time() if now is None else now
    claims = {
        "user_id": user.id,
        "app_id": app.id,
        "email": user.email,
        "exp": math.ceil(issued_at + lifetime.total_seconds()),
    }
    try:
        return jwt.encode(claims, app.secret, algorithm=ALGORITHM)
    except JWTError as exc:
        raise TokenSigningError(str(exc)) from exc
