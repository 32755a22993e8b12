"""
api/status.py -- Transport status categories and the domain-to-status mapping.

Third tier of the error taxonomy (see auth/errors.py for the first two).
Route handlers never pick HTTP codes themselves: they raise GatewayError
(validation) or call raise_for_auth_error() with the AuthError they caught.

The mapping depends on the operation because the same domain kind means
different things to different callers:

  register:  USER_EXISTS                        -> ALREADY_EXISTS
  login:     INVALID_CREDENTIALS, INVALID_APP_ID -> INVALID_ARGUMENT
  is_admin:  USER_NOT_FOUND, INVALID_APP_ID      -> NOT_FOUND ("user not found")
  any:       DEADLINE_EXCEEDED                  -> DEADLINE_EXCEEDED
  any:       everything else                    -> INTERNAL ("internal error")

INTERNAL responses never carry the underlying exception text.
"""

from __future__ import annotations

from enum import Enum
from typing import NoReturn

from fastapi import HTTPException

from auth.errors import AuthError, ErrorKind


class Status(str, Enum):
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERNAL = "internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    Status.ALREADY_EXISTS: 409,
    Status.INVALID_ARGUMENT: 400,
    Status.NOT_FOUND: 404,
    Status.DEADLINE_EXCEEDED: 504,
    Status.INTERNAL: 500,
}


class GatewayError(HTTPException):
    """HTTPException carrying a Status and a client-safe message.

    detail is the structured {"code", "message"} dict the app-level
    HTTPException handler in api/main.py renders as {"error": detail}.
    """

    def __init__(self, status: Status, message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(
            status_code=status.http_status,
            detail={"code": status.value, "message": message},
        )


# (operation, kind) -> (status, message). Missing entries fall through to INTERNAL.
_OPERATION_MAP: dict[str, dict[ErrorKind, tuple[Status, str]]] = {
    "register": {
        ErrorKind.USER_EXISTS: (Status.ALREADY_EXISTS, "user already exists"),
    },
    "login": {
        ErrorKind.INVALID_CREDENTIALS: (Status.INVALID_ARGUMENT, "invalid credentials"),
        ErrorKind.INVALID_APP_ID: (Status.INVALID_ARGUMENT, "invalid app ID"),
    },
    "is_admin": {
        ErrorKind.USER_NOT_FOUND: (Status.NOT_FOUND, "user not found"),
        ErrorKind.INVALID_APP_ID: (Status.NOT_FOUND, "user not found"),
    },
}


def status_for(operation: str, err: AuthError) -> tuple[Status, str]:
    """Return the (Status, message) the gateway should answer with."""
    if err.kind is ErrorKind.DEADLINE_EXCEEDED:
        return Status.DEADLINE_EXCEEDED, "deadline exceeded"
    mapped = _OPERATION_MAP.get(operation, {}).get(err.kind)
    if mapped is None:
        return Status.INTERNAL, "internal error"
    return mapped


def raise_for_auth_error(operation: str, err: AuthError) -> NoReturn:
    status, message = status_for(operation, err)
    raise GatewayError(status, message) from err
