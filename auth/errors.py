"""
auth/errors.py -- Error taxonomy for the storage and domain layers.

Two layers, translated once in auth/service.py:

  Storage layer (raised by CredentialStore implementations):
    UserNotFoundError, AppNotFoundError, DuplicateUserError.
    Anything else a store raises (e.g. sqlalchemy.exc.OperationalError) is an
    infrastructure failure.

  Domain layer (raised by AuthService, caught by the gateway):
    AuthError carrying an ErrorKind plus the name of the operation that raised
    it. The gateway switches on kind, never on message text.

Domain kinds USER_EXISTS, INVALID_CREDENTIALS, INVALID_APP_ID and
USER_NOT_FOUND are expected outcomes. INTERNAL wraps infrastructure failures;
its message never reaches the client. DEADLINE_EXCEEDED means the request
context expired or was cancelled mid-operation.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from enum import Enum


# ---------------------------------------------------------------------------
# Storage layer
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Base class for the not-found / duplicate outcomes a store reports."""


class UserNotFoundError(StorageError):
    pass


class AppNotFoundError(StorageError):
    pass


class DuplicateUserError(StorageError):
    pass


# ---------------------------------------------------------------------------
# Token issuer
# ---------------------------------------------------------------------------


class TokenSigningError(Exception):
    """The token could not be built or signed (empty secret, bad lifetime)."""


# ---------------------------------------------------------------------------
# Domain layer
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    USER_EXISTS = "user_exists"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_APP_ID = "invalid_app_id"
    USER_NOT_FOUND = "user_not_found"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERNAL = "internal"


_MESSAGES = {
    ErrorKind.USER_EXISTS: "user already exists",
    ErrorKind.INVALID_CREDENTIALS: "invalid credentials",
    ErrorKind.INVALID_APP_ID: "invalid app ID",
    ErrorKind.USER_NOT_FOUND: "user not found",
    ErrorKind.DEADLINE_EXCEEDED: "deadline exceeded",
    ErrorKind.INTERNAL: "internal error",
}

class AuthError(Exception):
    """A failure outcome of an AuthService operation.

    Attributes:
        kind:    Machine-checkable category. The gateway maps on this.
        op:      Name of the operation that raised, e.g. "auth.login".
        context: Optional human-readable detail for logs. Never sent to clients.

    The underlying exception, if any, is chained via `raise ... from exc`.
    """

    def __init__(self, kind: ErrorKind, op: str = "", context: str = "") -> None:
        self.kind = kind
        self.op = op
        self.context = context
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Client-safe message for this kind."""
        return _MESSAGES[self.kind]

    def __str__(self) -> str:
        parts = [p for p in (self.op, self.message, self.context) if p]
        return ": ".join(parts)

    def __repr__(self) -> str:
        return f"AuthError(kind={self.kind.value!r}, op={self.op!r}, context={self.context!r})"
